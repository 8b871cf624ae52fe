"""Common test fixtures for simplenotes."""

import datetime

import pytest
from sqlalchemy import func, select, text

from simplenotes.config import config
from simplenotes.models.db_models import DBNote, DBTag, get_session_factory, init_db
from simplenotes.observability import metrics
from simplenotes.server.web_server import create_app
from simplenotes.services.note_service import NoteService
from simplenotes.storage.note_repository import NoteRepository
from simplenotes.storage.tag_repository import TagRepository

TEST_PASSWORD = "correct horse"


@pytest.fixture(autouse=True)
def _reset_metrics():
    """Every test starts with empty in-process metrics."""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Configure with test paths (auto-restored even on crash)."""
    monkeypatch.setattr(config, "base_dir", tmp_path)
    monkeypatch.setattr(config, "database_path", tmp_path / "test_simplenotes.sqlite")
    monkeypatch.setattr(config, "password", TEST_PASSWORD)
    monkeypatch.setattr(config, "secret_key", "test-secret")
    monkeypatch.setattr(config, "log_dir", tmp_path / "logs")
    yield config


@pytest.fixture
def engine(test_config):
    """Create a fresh database with the schema applied."""
    engine = init_db(test_config.get_db_url())
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session_factory(engine)


@pytest.fixture
def note_repository(session_factory):
    """Create a test note repository."""
    yield NoteRepository(session_factory)


@pytest.fixture
def tag_repository(session_factory):
    yield TagRepository(session_factory)


@pytest.fixture
def note_service(note_repository):
    """Create a test NoteService."""
    yield NoteService(repository=note_repository)


@pytest.fixture
def app(test_config, note_service):
    app = create_app(test_config, note_service)
    app.config.update(TESTING=True)
    yield app


@pytest.fixture
def client(app):
    """Anonymous test client."""
    return app.test_client()


@pytest.fixture
def auth_client(client):
    """Test client that has already logged in."""
    response = client.post("/login", data={"password": TEST_PASSWORD})
    assert response.status_code == 302
    return client


@pytest.fixture
def jan1():
    return datetime.datetime(2024, 1, 1, 9, 30, tzinfo=datetime.timezone.utc)


@pytest.fixture
def stored_tags(session_factory):
    """Return a callable listing tag names straight from the tags table."""
    def _names():
        with session_factory() as session:
            return list(session.scalars(select(DBTag.name).order_by(DBTag.name)))
    return _names


@pytest.fixture
def stored_note_count(session_factory):
    """Return a callable counting rows in the notes table."""
    def _count():
        with session_factory() as session:
            return session.scalar(select(func.count(DBNote.id)))
    return _count


@pytest.fixture
def orphan_tag(session_factory):
    """Insert a tag with no notes and return its name."""
    with session_factory() as session:
        session.execute(
            text("INSERT INTO tags (name, created_at) VALUES ('orphan', CURRENT_TIMESTAMP)")
        )
        session.commit()
    return "orphan"
