"""Flask application serving the simplenotes pages.

The application is built by create_app(), which receives its configuration
and NoteService explicitly. Handlers stay thin: parse the form, validate it,
call the service, then redirect or re-render.
"""
import functools
import hmac
import logging
import time
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from flask import (Flask, current_app, g, jsonify, redirect, render_template,
                   request, session, url_for)

from simplenotes.config import SimpleNotesConfig, config as default_config
from simplenotes.exceptions import NoteNotFoundError, StorageError
from simplenotes.observability import metrics
from simplenotes.services.note_form import NoteForm
from simplenotes.services.note_service import NoteService
from simplenotes.utils import local_now

logger = logging.getLogger(__name__)

_HERE = Path(__file__).resolve().parent


def _service() -> NoteService:
    return current_app.extensions["simplenotes"]["service"]


def _config() -> SimpleNotesConfig:
    return current_app.extensions["simplenotes"]["config"]


def _render_form(form: NoteForm, action: str, note_id: Optional[int] = None, status: int = 200):
    return render_template(
        "note_form.html",
        form=form,
        url=request.path,
        action=action,
        note_id=note_id,
    ), status


def _is_local_path(target: Optional[str]) -> bool:
    # Browsers read a backslash as a slash, so /\host is off-site too
    if not target or "\\" in target:
        return False
    parsed = urlparse(target)
    return target.startswith("/") and not parsed.scheme and not parsed.netloc


def login_required(view):
    @functools.wraps(view)
    def wrapped_view(*args, **kwargs):
        if not session.get("authenticated"):
            return redirect(url_for("login", next=request.path))
        return view(*args, **kwargs)
    return wrapped_view


def create_app(
    app_config: Optional[SimpleNotesConfig] = None,
    service: Optional[NoteService] = None,
) -> Flask:
    """Build the Flask application.

    Args:
        app_config: Server configuration. Defaults to the global config.
        service: Note service backed by the store. Created from the
            configured database when None.
    """
    app_config = app_config or default_config
    if service is None:
        service = NoteService()

    app = Flask(
        __name__,
        template_folder=str(_HERE / "templates"),
        static_folder=str(_HERE / "static"),
    )
    app.config.update(SECRET_KEY=app_config.secret_key)
    app.extensions["simplenotes"] = {"config": app_config, "service": service}

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()

    @app.after_request
    def _log_request(response):
        started = g.get("request_start")
        duration_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        logger.info(
            f'"{request.method} {request.path}" {response.status_code} {duration_ms:.2f}ms'
        )
        return response

    @app.errorhandler(NoteNotFoundError)
    def _note_not_found(exc: NoteNotFoundError):
        return exc.message, 404

    @app.errorhandler(StorageError)
    def _storage_error(exc: StorageError):
        logger.error(f"Storage failure: {exc}")
        return "Something went wrong", 500

    # -- Authentication ----------------------------------------------------

    @app.route("/login", methods=["GET", "POST"])
    def login():
        error = None
        next_url = request.values.get("next")
        if request.method == "POST":
            password = request.form.get("password") or ""
            if hmac.compare_digest(password.encode("utf-8"), _config().password.encode("utf-8")):
                session.clear()
                session["authenticated"] = True
                logger.info("Login succeeded")
                return redirect(next_url if _is_local_path(next_url) else url_for("index"))
            logger.warning("Login failed")
            error = "Invalid password"
        return render_template("login.html", error=error, next_url=next_url), (401 if error else 200)

    @app.route("/logout", methods=["POST"])
    @login_required
    def logout():
        session.clear()
        return redirect(url_for("login"))

    # -- Pages ---------------------------------------------------------------

    @app.route("/")
    @login_required
    def index():
        notes = _service().list_recent(_config().recent_notes_limit)
        return render_template("index.html", notes=notes)

    @app.route("/health")
    def health():
        return jsonify(
            status="healthy",
            server=_config().server_name,
            version=_config().server_version,
            metrics=metrics.get_summary(),
        )

    @app.route("/note/new", methods=["GET"])
    @login_required
    def note_create_form():
        form = NoteForm.blank(local_now(_config().display_timezone))
        return _render_form(form, "create")

    @app.route("/note/new", methods=["POST"])
    @login_required
    def note_create():
        form = NoteForm.from_mapping(request.form)
        result = form.validate()
        if result.is_valid:
            _service().create_from_result(result)
            return redirect(url_for("index"))
        return _render_form(form, "create")

    @app.route("/note/<int:note_id>/change", methods=["GET"])
    @login_required
    def note_update_form(note_id: int):
        note = _service().get_note(note_id)
        return _render_form(NoteForm.from_note(note), "update", note_id=note.id)

    @app.route("/note/<int:note_id>/change", methods=["POST"])
    @login_required
    def note_update(note_id: int):
        note = _service().get_note(note_id)
        form = NoteForm.from_mapping(request.form)
        result = form.validate()
        if result.is_valid:
            _service().update_from_result(note.id, result)
            return redirect(url_for("index"))
        return _render_form(form, "update", note_id=note.id)

    @app.route("/note/<int:note_id>/delete", methods=["POST"])
    @login_required
    def note_delete(note_id: int):
        _service().delete_note(note_id)
        return redirect(url_for("index"))

    return app
