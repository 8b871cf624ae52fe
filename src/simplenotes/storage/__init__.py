"""Storage layer for simplenotes."""
from simplenotes.storage.base import Repository
from simplenotes.storage.note_repository import NoteRepository
from simplenotes.storage.tag_repository import TagRepository

__all__ = ["Repository", "NoteRepository", "TagRepository"]
