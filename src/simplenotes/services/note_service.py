"""Service layer for note operations."""

import datetime
import logging
from typing import List, Optional

from simplenotes.config import config
from simplenotes.models.db_models import get_session_factory
from simplenotes.models.schema import Note, Tag
from simplenotes.observability import timed_operation
from simplenotes.services.note_form import ValidationResult
from simplenotes.storage.note_repository import NoteRepository

logger = logging.getLogger(__name__)


class NoteService:
    """Service for creating, editing, deleting and listing notes.

    Callers validate input with NoteForm first and pass the cleaned values
    (or the ValidationResult itself) in here.
    """

    def __init__(
        self,
        repository: Optional[NoteRepository] = None,
        engine: Optional[object] = None,
    ):
        """Initialize the service.

        Args:
            repository: Note storage backend. Created with defaults if None.
            engine: Pre-configured SQLAlchemy engine used to build the
                repository. Only used when repository is None.
        """
        if repository is not None:
            self.repository = repository
        else:
            self.repository = NoteRepository(get_session_factory(engine))

    def create_note(
        self, body: str, date: datetime.datetime, tags: Optional[List[str]] = None
    ) -> Note:
        """Create a note with its tags.

        Args:
            body: Cleaned note body.
            date: Note instant (UTC).
            tags: Cleaned tag names; repeats are stored once.

        Returns:
            The created Note with its store-assigned ID.
        """
        note = Note(
            body=body,
            date=date,
            tags=[Tag(name=name) for name in (tags or [])],
        )
        with timed_operation("service.create_note") as op:
            created = self.repository.create(note)
            op["note_id"] = created.id
        return created

    def update_note(
        self,
        note_id: int,
        body: str,
        date: datetime.datetime,
        tags: Optional[List[str]] = None,
    ) -> Note:
        """Replace body, date and tags of a note; reclaim tags left unused.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        note = Note(
            id=note_id,
            body=body,
            date=date,
            tags=[Tag(name=name) for name in (tags or [])],
        )
        with timed_operation("service.update_note", note_id=note_id):
            return self.repository.update(note)

    def create_from_result(self, result: ValidationResult) -> Note:
        """Create a note from a valid form result."""
        self._require_valid(result)
        return self.create_note(result.cleaned_body, result.cleaned_date, result.cleaned_tags)

    def update_from_result(self, note_id: int, result: ValidationResult) -> Note:
        """Update a note from a valid form result."""
        self._require_valid(result)
        return self.update_note(
            note_id, result.cleaned_body, result.cleaned_date, result.cleaned_tags
        )

    def delete_note(self, note_id: int) -> None:
        """Permanently delete a note and reclaim tags left unused.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        with timed_operation("service.delete_note", note_id=note_id):
            self.repository.delete(note_id)

    def get_note(self, note_id: int) -> Note:
        """Get a note by ID.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        return self.repository.find_note(note_id)

    def list_recent(self, limit: Optional[int] = None) -> List[Note]:
        """Get the most recent notes, newest date first."""
        return self.repository.list_recent(limit or config.recent_notes_limit)

    @staticmethod
    def _require_valid(result: ValidationResult) -> None:
        # Invalid forms are re-rendered by the caller, never saved
        if not result.is_valid:
            raise ValueError(f"cannot save an invalid form: {result.errors}")
