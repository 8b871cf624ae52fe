"""Note form validation and tag normalization.

The form is the only gate between raw user input and the store. Every check
runs and every failure is collected, so the user sees all problems at once
and gets their input back unchanged.
"""

import datetime
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from simplenotes.models.schema import MAX_BODY_LENGTH, Note
from simplenotes.utils import combine, format_date, format_time, parse_date, parse_time

# Error messages shown next to the form
BODY_BLANK = "Body cannot be blank"
BODY_TOO_LARGE = "Body is too large"
INVALID_DATE = "Invalid Date"
INVALID_TIME = "Invalid Time"


def normalize_tags(raw: str) -> List[str]:
    """Turn "Work, ideas ,,Work" into ["work", "ideas", "work"].

    Tokens are trimmed and lowercased, empty ones dropped. Duplicates are
    kept here; the repository stores each name once per note.
    """
    names = []
    for token in (raw or "").split(","):
        name = token.strip().lower()
        if name:
            names.append(name)
    return names


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a note form.

    ``cleaned_date`` is None whenever the date or the time failed to parse.
    """

    errors: List[str] = field(default_factory=list)
    cleaned_body: str = ""
    cleaned_date: Optional[datetime.datetime] = None
    cleaned_tags: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_note_form(raw_body: str, raw_date: str, raw_time: str, raw_tags: str) -> ValidationResult:
    """Validate raw note fields and produce cleaned values."""
    errors: List[str] = []

    if not raw_body.strip():
        errors.append(BODY_BLANK)

    # Measured on the submitted text, before trimming
    if len(raw_body) > MAX_BODY_LENGTH:
        errors.append(BODY_TOO_LARGE)

    cleaned_body = raw_body.strip()

    date = None
    try:
        date = parse_date(raw_date)
    except ValueError:
        errors.append(INVALID_DATE)

    time = None
    try:
        time = parse_time(raw_time)
    except ValueError:
        errors.append(INVALID_TIME)

    cleaned_date = None
    if date is not None and time is not None:
        cleaned_date = combine(date, time)

    return ValidationResult(
        errors=errors,
        cleaned_body=cleaned_body,
        cleaned_date=cleaned_date,
        cleaned_tags=normalize_tags(raw_tags),
    )


@dataclass
class NoteForm:
    """Raw values of the note form, as typed by the user."""

    body: str = ""
    date: str = ""
    time: str = ""
    tags: str = ""
    errors: List[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, str]) -> "NoteForm":
        """Build a form from submitted fields (e.g. ``request.form``).

        Browsers submit textarea line breaks as CRLF; they are counted as
        one character, the same as the textarea's own ``maxlength``.
        """
        return cls(
            body=data.get("body", "").replace("\r\n", "\n"),
            date=data.get("date", ""),
            time=data.get("time", ""),
            tags=data.get("tags", ""),
        )

    @classmethod
    def from_note(cls, note: Note) -> "NoteForm":
        """Prefill the form for editing an existing note."""
        return cls(
            body=note.body,
            date=note.display_date(),
            time=note.display_time(),
            tags=note.tags_text(),
        )

    @classmethod
    def blank(cls, now: datetime.datetime) -> "NoteForm":
        """An empty form whose date and time default to ``now``."""
        return cls(date=format_date(now), time=format_time(now))

    def validate(self) -> ValidationResult:
        """Validate the form; errors are also kept on ``self.errors``."""
        result = validate_note_form(self.body, self.date, self.time, self.tags)
        self.errors = list(result.errors)
        return result

    def is_valid(self) -> bool:
        return self.validate().is_valid
