"""Repository for note storage and retrieval."""

import datetime
import logging
from typing import Iterable, List, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from simplenotes.exceptions import ErrorCode, NoteNotFoundError, StorageError
from simplenotes.models.db_models import DBNote
from simplenotes.models.schema import Note, Tag
from simplenotes.observability import traced
from simplenotes.storage.base import Repository
from simplenotes.storage.tag_repository import (
    TagRepository,
    delete_stale_tags,
    get_or_create_tag,
    report_reclaimed,
)
from simplenotes.utils import ensure_timezone_aware

logger = logging.getLogger(__name__)


def _to_db_datetime(value: datetime.datetime) -> datetime.datetime:
    """Convert an instant to the naive UTC value stored in SQLite."""
    value = ensure_timezone_aware(value)
    return value.astimezone(datetime.timezone.utc).replace(tzinfo=None)


def _unique_names(tag_names: Iterable[str]) -> List[str]:
    """Drop repeated tag names, keeping the first occurrence."""
    seen = set()
    names = []
    for name in tag_names:
        if name not in seen:
            seen.add(name)
            names.append(name)
    return names


class NoteRepository(Repository[Note]):
    """Repository for notes and their tag associations.

    Each public method runs in its own transaction. Every write that can
    leave a tag with no notes (tag replacement, update, delete) runs the
    stale-tag reclamation pass inside that same transaction, so a failure
    anywhere rolls the whole unit back.
    """

    def __init__(self, session_factory):
        """Initialize the note repository.

        Args:
            session_factory: SQLAlchemy session factory for database operations.
        """
        self.session_factory = session_factory
        self.tags = TagRepository(session_factory)

    # -- Session helpers ----------------------------------------------------

    @staticmethod
    def _get_db_note(session: Session, note_id: int) -> DBNote:
        db_note = session.scalar(
            select(DBNote)
            .where(DBNote.id == note_id)
            .options(selectinload(DBNote.tags))
        )
        if db_note is None:
            raise NoteNotFoundError(note_id)
        return db_note

    @staticmethod
    def _replace_tags(session: Session, db_note: DBNote, tag_names: Iterable[str]) -> None:
        """Replace a note's tag associations wholesale (never merged)."""
        db_note.tags = [
            get_or_create_tag(session, name) for name in _unique_names(tag_names)
        ]

    @staticmethod
    def _reclaim(session: Session) -> List[str]:
        # Pending association changes must reach the database first
        session.flush()
        return delete_stale_tags(session)

    @staticmethod
    def _db_note_to_model(db_note: DBNote) -> Note:
        """Convert a SQLAlchemy DBNote to a domain Note."""
        return Note(
            id=db_note.id,
            body=db_note.body,
            date=ensure_timezone_aware(db_note.date),
            tags=[
                Tag(id=t.id, name=t.name)
                for t in sorted(db_note.tags, key=lambda t: t.name)
            ],
            created_at=ensure_timezone_aware(db_note.created_at),
            updated_at=ensure_timezone_aware(db_note.updated_at),
        )

    def _run(self, operation: str, code: ErrorCode, work):
        """Run ``work(session)`` in a transaction, wrapping store failures.

        NoteNotFoundError and other domain errors propagate unchanged; the
        session context manager rolls back anything uncommitted.
        """
        try:
            with self.session_factory() as session:
                result = work(session)
                session.commit()
                return result
        except SQLAlchemyError as e:
            logger.error(f"{operation} failed: {e}")
            raise StorageError(
                f"Failed to {operation.replace('_', ' ')}",
                operation=operation,
                code=code,
                original_error=e,
            ) from e

    # -- Fine-grained operations ------------------------------------------

    @traced("create_note")
    def create_note(self, body: str, date: datetime.datetime) -> int:
        """Insert a note without tags and return its ID."""
        def work(session: Session) -> int:
            db_note = DBNote(body=body, date=_to_db_datetime(date))
            session.add(db_note)
            session.flush()
            return db_note.id

        note_id = self._run("create_note", ErrorCode.STORAGE_WRITE_FAILED, work)
        logger.info(f"Created note {note_id}")
        return note_id

    @traced("set_note_tags")
    def set_note_tags(self, note_id: int, tag_names: Iterable[str]) -> None:
        """Replace the tags of a note and reclaim the tags it dropped.

        New names create tags; repeated names are stored once.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        names = list(tag_names)

        def work(session: Session) -> List[str]:
            db_note = self._get_db_note(session, note_id)
            self._replace_tags(session, db_note, names)
            return self._reclaim(session)

        report_reclaimed(self._run("set_note_tags", ErrorCode.STORAGE_WRITE_FAILED, work))

    @traced("update_note")
    def update_note(self, note_id: int, body: str, date: datetime.datetime) -> None:
        """Replace the body and date of a note.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        def work(session: Session) -> None:
            db_note = self._get_db_note(session, note_id)
            db_note.body = body
            db_note.date = _to_db_datetime(date)

        self._run("update_note", ErrorCode.STORAGE_WRITE_FAILED, work)

    @traced("find_note")
    def find_note(self, note_id: int) -> Note:
        """Get a note with its tags.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        def work(session: Session) -> Note:
            return self._db_note_to_model(self._get_db_note(session, note_id))

        return self._run("find_note", ErrorCode.STORAGE_READ_FAILED, work)

    @traced("delete_note")
    def delete_note(self, note_id: int) -> None:
        """Permanently delete a note and reclaim the tags it leaves unused.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        def work(session: Session) -> List[str]:
            session.delete(self._get_db_note(session, note_id))
            return self._reclaim(session)

        reclaimed = self._run("delete_note", ErrorCode.STORAGE_DELETE_FAILED, work)
        logger.info(f"Deleted note {note_id}")
        report_reclaimed(reclaimed)

    @traced("list_recent")
    def list_recent(self, limit: int) -> List[Note]:
        """Get up to ``limit`` notes, newest date first."""
        def work(session: Session) -> List[Note]:
            db_notes = session.scalars(
                select(DBNote)
                .options(selectinload(DBNote.tags))
                .order_by(DBNote.date.desc(), DBNote.id.desc())
                .limit(limit)
            ).all()
            return [self._db_note_to_model(db_note) for db_note in db_notes]

        return self._run("list_recent", ErrorCode.STORAGE_READ_FAILED, work)

    def reclaim_stale_tags(self) -> int:
        """Delete every tag no note refers to. Returns the number deleted."""
        return self.tags.delete_unused()

    # -- Transactional compound operations ---------------------------------

    def create(self, note: Note) -> Note:
        """Create a note together with its tags in one transaction."""
        def work(session: Session) -> Note:
            db_note = DBNote(body=note.body, date=_to_db_datetime(note.date))
            session.add(db_note)
            self._replace_tags(session, db_note, note.tag_names)
            session.flush()
            return self._db_note_to_model(db_note)

        created = self._run("create_note", ErrorCode.STORAGE_WRITE_FAILED, work)
        logger.info(f"Created note {created.id} with tags {created.tag_names}")
        return created

    def get(self, id: int) -> Note:
        """Get a note by ID (alias of find_note)."""
        return self.find_note(id)

    def update(self, note: Note) -> Note:
        """Update body, date and tags of a note, then reclaim stale tags.

        All three steps commit together.

        Raises:
            NoteNotFoundError: If the note does not exist.
        """
        def work(session: Session) -> Tuple[Note, List[str]]:
            db_note = self._get_db_note(session, note.id)
            db_note.body = note.body
            db_note.date = _to_db_datetime(note.date)
            self._replace_tags(session, db_note, note.tag_names)
            reclaimed = self._reclaim(session)
            return self._db_note_to_model(db_note), reclaimed

        updated, reclaimed = self._run("update_note", ErrorCode.STORAGE_WRITE_FAILED, work)
        logger.info(f"Updated note {updated.id} with tags {updated.tag_names}")
        report_reclaimed(reclaimed)
        return updated

    def delete(self, id: int) -> None:
        """Delete a note and reclaim the tags it leaves unused (alias of delete_note)."""
        self.delete_note(id)

    def get_all(self, limit: int) -> List[Note]:
        """Get up to ``limit`` notes, newest date first (alias of list_recent)."""
        return self.list_recent(limit)
