"""Tests for the NoteRepository."""
import datetime
from datetime import timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from simplenotes.exceptions import ErrorCode, NoteNotFoundError, StorageError
from simplenotes.models.schema import Note, Tag


def _note(body="A note", when=None, tags=(), note_id=None):
    return Note(
        id=note_id,
        body=body,
        date=when or datetime.datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc),
        tags=[Tag(name=name) for name in tags],
    )


class TestFineGrainedOperations:
    """Tests for the single-step repository operations."""

    def test_create_and_find(self, note_repository, jan1):
        note_id = note_repository.create_note("Hello", jan1)
        assert isinstance(note_id, int)

        note = note_repository.find_note(note_id)
        assert note.id == note_id
        assert note.body == "Hello"
        assert note.date == jan1
        assert note.tags == []

    def test_set_note_tags_stores_each_name_once(self, note_repository, jan1):
        note_id = note_repository.create_note("Tagged", jan1)
        note_repository.set_note_tags(note_id, ["b", "a", "b"])

        note = note_repository.find_note(note_id)
        assert note.tag_names == ["a", "b"]

    def test_set_note_tags_replaces_wholesale(self, note_repository, stored_tags, jan1):
        note_id = note_repository.create_note("Tagged", jan1)
        note_repository.set_note_tags(note_id, ["old", "kept"])
        note_repository.set_note_tags(note_id, ["kept", "new"])

        assert note_repository.find_note(note_id).tag_names == ["kept", "new"]
        # The dropped tag is reclaimed in the same transaction
        assert stored_tags() == ["kept", "new"]

    def test_set_note_tags_keeps_tags_of_other_notes(self, note_repository, stored_tags, jan1):
        first = note_repository.create_note("first", jan1)
        second = note_repository.create_note("second", jan1)
        note_repository.set_note_tags(first, ["shared"])
        note_repository.set_note_tags(second, ["shared"])

        note_repository.set_note_tags(first, [])

        assert stored_tags() == ["shared"]
        assert note_repository.find_note(second).tag_names == ["shared"]

    def test_update_note(self, note_repository, jan1):
        note_id = note_repository.create_note("Before", jan1)
        later = jan1 + datetime.timedelta(days=3)
        note_repository.update_note(note_id, "After", later)

        note = note_repository.find_note(note_id)
        assert note.body == "After"
        assert note.date == later

    def test_delete_note(self, note_repository, stored_tags, jan1):
        note_id = note_repository.create_note("Doomed", jan1)
        note_repository.set_note_tags(note_id, ["x"])
        note_repository.delete_note(note_id)
        with pytest.raises(NoteNotFoundError):
            note_repository.find_note(note_id)
        assert stored_tags() == []

    def test_missing_note_raises_not_found(self, note_repository, jan1):
        with pytest.raises(NoteNotFoundError) as exc_info:
            note_repository.find_note(999)
        assert exc_info.value.code == ErrorCode.NOTE_NOT_FOUND
        assert exc_info.value.note_id == 999

        with pytest.raises(NoteNotFoundError):
            note_repository.update_note(999, "x", jan1)
        with pytest.raises(NoteNotFoundError):
            note_repository.set_note_tags(999, ["x"])
        with pytest.raises(NoteNotFoundError):
            note_repository.delete_note(999)

    def test_non_utc_dates_are_stored_as_utc(self, note_repository):
        eastern = timezone(datetime.timedelta(hours=-5))
        when = datetime.datetime(2024, 1, 1, 10, 0, tzinfo=eastern)
        note_id = note_repository.create_note("Zoned", when)

        note = note_repository.find_note(note_id)
        assert note.date == datetime.datetime(2024, 1, 1, 15, 0, tzinfo=timezone.utc)
        assert note.date.tzinfo == timezone.utc


class TestListRecent:
    """Tests for listing notes newest first."""

    def test_newest_date_first(self, note_repository, jan1):
        older = note_repository.create_note("older", jan1)
        newest = note_repository.create_note("newest", jan1 + datetime.timedelta(days=2))
        middle = note_repository.create_note("middle", jan1 + datetime.timedelta(days=1))

        notes = note_repository.list_recent(30)
        assert [n.id for n in notes] == [newest, middle, older]

    def test_limit(self, note_repository, jan1):
        for i in range(5):
            note_repository.create_note(f"note {i}", jan1 + datetime.timedelta(hours=i))

        notes = note_repository.list_recent(3)
        assert [n.body for n in notes] == ["note 4", "note 3", "note 2"]
        assert note_repository.get_all(3) == notes

    def test_includes_tags(self, note_repository, jan1):
        note_repository.create(_note(tags=["zeta", "alpha"]))
        [note] = note_repository.list_recent(30)
        assert note.tag_names == ["alpha", "zeta"]

    def test_empty_store(self, note_repository):
        assert note_repository.list_recent(30) == []


class TestCompoundOperations:
    """Tests for create/update/delete that run as one transaction."""

    def test_create_with_tags(self, note_repository):
        created = note_repository.create(_note(body="Plan", tags=["work", "ideas", "work"]))
        assert created.id is not None
        assert created.tag_names == ["ideas", "work"]
        assert note_repository.get(created.id).tag_names == ["ideas", "work"]

    def test_tags_are_shared_by_name(self, note_repository, stored_tags):
        first = note_repository.create(_note(body="one", tags=["shared"]))
        second = note_repository.create(_note(body="two", tags=["shared"]))

        assert stored_tags() == ["shared"]
        assert first.tags[0].id == second.tags[0].id

    def test_update_replaces_tags_and_reclaims(self, note_repository, stored_tags):
        note = note_repository.create(_note(tags=["old", "keep"]))
        other = note_repository.create(_note(body="other", tags=["keep"]))

        updated = note_repository.update(
            _note(body="Changed", tags=["new"], note_id=note.id)
        )

        assert updated.body == "Changed"
        assert updated.tag_names == ["new"]
        # "keep" is still used by the other note
        assert stored_tags() == ["keep", "new"]
        assert note_repository.get(other.id).tag_names == ["keep"]

    def test_update_missing_note(self, note_repository):
        with pytest.raises(NoteNotFoundError):
            note_repository.update(_note(note_id=404))

    def test_delete_reclaims_orphaned_tags(self, note_repository, stored_tags):
        note = note_repository.create(_note(tags=["x"]))
        note_repository.delete(note.id)

        assert stored_tags() == []
        with pytest.raises(NoteNotFoundError):
            note_repository.get(note.id)

    def test_delete_keeps_tags_used_elsewhere(self, note_repository, stored_tags):
        doomed = note_repository.create(_note(tags=["x", "y"]))
        survivor = note_repository.create(_note(body="survivor", tags=["y"]))

        note_repository.delete(doomed.id)

        assert stored_tags() == ["y"]
        assert note_repository.get(survivor.id).tag_names == ["y"]

    def test_delete_missing_note(self, note_repository):
        with pytest.raises(NoteNotFoundError):
            note_repository.delete(12345)

    def test_storage_failure_is_wrapped(self, note_repository):
        with patch(
            "simplenotes.storage.note_repository.delete_stale_tags",
            side_effect=OperationalError("DELETE", {}, Exception("disk I/O error")),
        ):
            note = note_repository.create(_note(tags=["a"]))
            with pytest.raises(StorageError) as exc_info:
                note_repository.update(_note(body="Changed", tags=["b"], note_id=note.id))

        assert exc_info.value.code == ErrorCode.STORAGE_WRITE_FAILED
        assert exc_info.value.operation == "update_note"
        # Nothing from the failed transaction was committed
        stored = note_repository.get(note.id)
        assert stored.body == "A note"
        assert stored.tag_names == ["a"]
