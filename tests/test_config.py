"""Tests for configuration and command line handling."""
from pathlib import Path

import pytest

from simplenotes.config import SimpleNotesConfig
from simplenotes.exceptions import ConfigurationError, ErrorCode
from simplenotes.main import parse_args, update_config


class TestSimpleNotesConfig:
    def test_defaults(self, monkeypatch):
        for name in ("SIMPLENOTES_PORT", "SIMPLENOTES_RECENT_LIMIT", "SIMPLENOTES_DATABASE_PATH"):
            monkeypatch.delenv(name, raising=False)
        cfg = SimpleNotesConfig()
        assert cfg.port == 3000
        assert cfg.recent_notes_limit == 30
        assert cfg.database_path == Path("simplenotes.sqlite")

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SIMPLENOTES_PORT", "8080")
        monkeypatch.setenv("SIMPLENOTES_PASSWORD", "hunter2")
        cfg = SimpleNotesConfig()
        assert cfg.port == 8080
        assert cfg.password == "hunter2"

    def test_server_name_read_at_construction(self, monkeypatch):
        monkeypatch.setenv("SIMPLENOTES_SERVER_NAME", "notes-box")
        assert SimpleNotesConfig().server_name == "notes-box"
        monkeypatch.delenv("SIMPLENOTES_SERVER_NAME")
        assert SimpleNotesConfig().server_name == "simplenotes"

    @pytest.mark.parametrize(
        "field,value",
        [("recent_notes_limit", 0), ("port", 0), ("port", 70000), ("password", "")],
    )
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValueError):
            SimpleNotesConfig(**{field: value})

    def test_db_url_is_relative_to_base_dir(self, tmp_path):
        cfg = SimpleNotesConfig(base_dir=tmp_path, database_path=Path("data/notes.sqlite"))
        assert cfg.get_db_url() == f"sqlite:///{tmp_path / 'data' / 'notes.sqlite'}"
        assert (tmp_path / "data").is_dir()

    def test_log_dir(self, tmp_path):
        assert SimpleNotesConfig(log_dir=None).get_log_dir() is None
        cfg = SimpleNotesConfig(base_dir=tmp_path, log_dir=Path("logs"))
        assert cfg.get_log_dir() == tmp_path / "logs"


class TestCommandLine:
    def test_parse_args(self):
        args = parse_args(["--database-path", "/tmp/x.sqlite", "--port", "4000", "--log-level", "DEBUG"])
        assert args.database_path == "/tmp/x.sqlite"
        assert args.port == 4000
        assert args.log_level == "DEBUG"

    def test_update_config_applies_arguments(self, tmp_path):
        args = parse_args(["--database-path", str(tmp_path / "db.sqlite"), "--host", "0.0.0.0", "--port", "4000"])
        cfg = update_config(args)
        assert cfg.database_path == tmp_path / "db.sqlite"
        assert cfg.host == "0.0.0.0"
        assert cfg.port == 4000

    def test_update_config_rejects_bad_port(self):
        with pytest.raises(ConfigurationError) as exc_info:
            update_config(parse_args(["--port", "99999"]))
        assert exc_info.value.code == ErrorCode.CONFIG_INVALID
