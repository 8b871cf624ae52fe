#!/usr/bin/env python
"""Main entry point for the simplenotes server."""
import argparse
import logging
import os
import sys
from pathlib import Path

from pydantic import ValidationError

from simplenotes.config import SimpleNotesConfig, config
from simplenotes.exceptions import ConfigurationError
from simplenotes.models.db_models import get_session_factory, init_db
from simplenotes.observability import configure_logging
from simplenotes.server.web_server import create_app
from simplenotes.services.note_service import NoteService
from simplenotes.storage.note_repository import NoteRepository


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Simple Notes web server")
    parser.add_argument(
        "--database-path",
        help="SQLite database file path",
        type=str,
        default=os.environ.get("SIMPLENOTES_DATABASE_PATH")
    )
    parser.add_argument(
        "--host",
        help="Interface to listen on",
        type=str,
        default=None
    )
    parser.add_argument(
        "--port",
        help="Port to listen on",
        type=int,
        default=None
    )
    parser.add_argument(
        "--log-dir",
        help="Directory for rotating log files",
        type=str,
        default=os.environ.get("SIMPLENOTES_LOG_DIR")
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("SIMPLENOTES_LOG_LEVEL", "INFO")
    )
    return parser.parse_args(argv)


def update_config(args) -> SimpleNotesConfig:
    """Apply command line arguments on top of the global config.

    Raises:
        ConfigurationError: If the resulting settings are invalid.
    """
    updates = {}
    if args.database_path:
        updates["database_path"] = Path(args.database_path)
    if args.host:
        updates["host"] = args.host
    if args.port is not None:
        updates["port"] = args.port
    if args.log_dir:
        updates["log_dir"] = Path(args.log_dir)
    updates["log_level"] = args.log_level

    try:
        return SimpleNotesConfig.model_validate({**config.model_dump(), **updates})
    except ValidationError as e:
        key = str(e.errors()[0]["loc"][0]) if e.errors() and e.errors()[0]["loc"] else None
        raise ConfigurationError(f"Invalid configuration: {e}", config_key=key) from e


def main(argv=None):
    """Run the simplenotes server."""
    args = parse_args(argv)

    try:
        app_config = update_config(args)
    except ConfigurationError as e:
        logging.basicConfig(level=logging.ERROR)
        logging.getLogger(__name__).error(str(e))
        sys.exit(1)

    log_level = getattr(logging, app_config.log_level.upper(), logging.INFO)
    try:
        log_dir = configure_logging(log_dir=app_config.get_log_dir(), level=log_level, console=True)
    except OSError as e:
        # Fall back to basic console logging if file logging fails
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")
        log_dir = None

    logger = logging.getLogger(__name__)
    if log_dir:
        logger.info(f"Persistent logging enabled: {log_dir}")

    # Single engine shared by the whole application
    try:
        db_url = app_config.get_db_url()
        logger.info(f"Using SQLite database: {db_url}")
        engine = init_db(db_url)
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        sys.exit(1)

    service = NoteService(repository=NoteRepository(get_session_factory(engine)))
    app = create_app(app_config, service)

    try:
        logger.info(f"Running server on {app_config.host}:{app_config.port}")
        app.run(host=app_config.host, port=app_config.port)
    except Exception as e:
        logger.error(f"Error running server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
