"""Configuration module for simplenotes."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from simplenotes import __version__

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config, lives alongside the default log directory
_USER_ENV = Path.home() / ".simplenotes" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

_DEFAULT_PASSWORD = "super-secret"


class SimpleNotesConfig(BaseModel):
    """Configuration for the simplenotes server."""

    # Base directory for the project
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("SIMPLENOTES_BASE_DIR", "."))
    )
    # Database configuration
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("SIMPLENOTES_DATABASE_PATH", "simplenotes.sqlite")
        )
    )
    # HTTP server configuration
    host: str = Field(
        default_factory=lambda: os.getenv("SIMPLENOTES_HOST", "localhost")
    )
    port: int = Field(
        default_factory=lambda: int(os.getenv("SIMPLENOTES_PORT", "3000"))
    )
    # Shared credential gating every page
    password: str = Field(
        default_factory=lambda: os.getenv("SIMPLENOTES_PASSWORD", _DEFAULT_PASSWORD)
    )
    # Signs the session cookie
    secret_key: str = Field(
        default_factory=lambda: os.getenv(
            "SIMPLENOTES_SECRET_KEY", "dev-secret-change-me"
        )
    )
    # Zone used to prefill the "new note" form with the current time.
    # Stored dates are always UTC.
    display_timezone: str = Field(
        default_factory=lambda: os.getenv(
            "SIMPLENOTES_DISPLAY_TIMEZONE", "America/New_York"
        )
    )
    # Number of notes on the home page
    recent_notes_limit: int = Field(
        default_factory=lambda: int(os.getenv("SIMPLENOTES_RECENT_LIMIT", "30"))
    )
    # Logging configuration
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("SIMPLENOTES_LOG_DIR"))
            if os.getenv("SIMPLENOTES_LOG_DIR")
            else None
        )
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("SIMPLENOTES_LOG_LEVEL", "INFO")
    )
    server_name: str = Field(
        default_factory=lambda: os.getenv("SIMPLENOTES_SERVER_NAME", "simplenotes")
    )
    server_version: str = Field(default=__version__)

    @model_validator(mode="after")
    def _validate_server_config(self) -> "SimpleNotesConfig":
        """Validate numeric settings and warn about the default credential."""
        if self.recent_notes_limit < 1:
            raise ValueError("recent_notes_limit must be >= 1")
        if not 0 < self.port < 65536:
            raise ValueError("port must be between 1 and 65535")
        if not self.password:
            raise ValueError("password cannot be empty")
        if self.password == _DEFAULT_PASSWORD:
            logger.warning(
                "Using the default shared password. Set SIMPLENOTES_PASSWORD "
                "before exposing the server."
            )
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_db_url(self) -> str:
        """Get the database URL for SQLite."""
        db_path = self.get_absolute_path(self.database_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_path}"

    def get_log_dir(self) -> Optional[Path]:
        """Get the absolute log directory, or None when file logging is off."""
        if self.log_dir is None:
            return None
        return self.get_absolute_path(self.log_dir)


# Create a global config instance
config = SimpleNotesConfig()
