"""Data models for simplenotes."""

import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from simplenotes.utils import ensure_timezone_aware, format_date, format_time, utc_now

# Max amount of characters a Note body can have
MAX_BODY_LENGTH = 500


class Tag(BaseModel):
    """A tag attached to one or more notes."""

    id: Optional[int] = Field(default=None, description="Store-assigned ID")
    name: str = Field(..., description="Tag name (lowercase, trimmed)")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Normalize the name and reject empty names."""
        v = v.strip().lower()
        if not v:
            raise ValueError("Tag name cannot be empty")
        return v

    def __str__(self) -> str:
        return self.name


class Note(BaseModel):
    """A timestamped text note."""

    id: Optional[int] = Field(default=None, description="Store-assigned ID")
    body: str = Field(
        ..., min_length=1, max_length=MAX_BODY_LENGTH, description="Note text"
    )
    date: datetime.datetime = Field(..., description="Note date, normalized to UTC")
    tags: List[Tag] = Field(default_factory=list, description="Tags for categorization")
    created_at: datetime.datetime = Field(default_factory=utc_now)
    updated_at: datetime.datetime = Field(default_factory=utc_now)

    @field_validator("date", "created_at", "updated_at")
    @classmethod
    def validate_aware(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_timezone_aware(v)

    @property
    def tag_names(self) -> List[str]:
        return [tag.name for tag in self.tags]

    def tags_text(self) -> str:
        """Tag names as a comma-separated string, as typed in the form."""
        return ", ".join(self.tag_names)

    def display_date(self) -> str:
        return format_date(self.date)

    def display_time(self) -> str:
        return format_time(self.date)
