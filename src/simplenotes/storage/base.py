"""Base repository interface."""
from abc import ABC, abstractmethod
from typing import Generic, List, TypeVar

T = TypeVar("T")


class Repository(ABC, Generic[T]):
    """Abstract repository for a single entity type."""

    @abstractmethod
    def create(self, entity: T) -> T:
        """Persist a new entity and return it with its identity set."""

    @abstractmethod
    def get(self, id: int) -> T:
        """Get an entity by ID."""

    @abstractmethod
    def update(self, entity: T) -> T:
        """Replace a stored entity."""

    @abstractmethod
    def delete(self, id: int) -> None:
        """Delete an entity by ID."""

    @abstractmethod
    def get_all(self, limit: int) -> List[T]:
        """Get up to ``limit`` entities."""
