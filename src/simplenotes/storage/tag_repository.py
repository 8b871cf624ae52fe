"""Repository for tag storage and reclamation."""
import logging
from typing import List

from sqlalchemy import delete, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from simplenotes.exceptions import ErrorCode, StorageError, TagError
from simplenotes.models.db_models import DBTag, note_tag
from simplenotes.observability import metrics, traced

logger = logging.getLogger(__name__)


def get_or_create_tag(session: Session, tag_name: str) -> DBTag:
    """Atomically get or create a tag inside the caller's transaction.

    Uses INSERT OR IGNORE followed by SELECT so that two writers creating
    the same name never trip the unique constraint.
    """
    if not tag_name:
        raise TagError("Tag name cannot be empty", tag_name=tag_name)
    session.execute(
        text("INSERT OR IGNORE INTO tags (name, created_at) VALUES (:name, CURRENT_TIMESTAMP)"),
        {"name": tag_name}
    )
    return session.scalar(select(DBTag).where(DBTag.name == tag_name))


def delete_stale_tags(session: Session) -> List[str]:
    """Delete every tag with no note association, inside the caller's transaction.

    Only tags that have zero rows in ``note_tag`` at execution time are
    removed, so running it repeatedly is harmless.

    Returns:
        Names of the deleted tags.
    """
    stale = session.execute(
        select(DBTag.id, DBTag.name)
        .outerjoin(note_tag, DBTag.id == note_tag.c.tag_id)
        .where(note_tag.c.note_id.is_(None))
    ).all()
    if not stale:
        return []

    stale_ids = [row.id for row in stale]
    session.execute(
        delete(DBTag)
        .where(DBTag.id.in_(stale_ids))
        .where(~DBTag.id.in_(select(note_tag.c.tag_id)))
        .execution_options(synchronize_session=False)
    )
    return [row.name for row in stale]


def report_reclaimed(names: List[str]) -> None:
    """Log and count tags removed by a committed reclamation pass."""
    if names:
        logger.info(f"Reclaimed stale tags: {names}")
        metrics.record_reclaimed(len(names))


class TagRepository:
    """Repository for reclaiming stale tags.

    Tags have no lifecycle of their own: they are created when a note
    references a new name (see NoteRepository) and removed once no note
    references them.
    """

    def __init__(self, session_factory):
        """Initialize the tag repository.

        Args:
            session_factory: SQLAlchemy session factory for database operations.
        """
        self.session_factory = session_factory

    @traced("reclaim_stale_tags")
    def delete_unused(self) -> int:
        """Delete tags that are not associated with any notes.

        Returns:
            Number of tags deleted.
        """
        try:
            with self.session_factory() as session:
                names = delete_stale_tags(session)
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(
                "Failed to reclaim stale tags",
                operation="reclaim_stale_tags",
                code=ErrorCode.STORAGE_DELETE_FAILED,
                original_error=e,
            ) from e

        report_reclaimed(names)
        return len(names)
