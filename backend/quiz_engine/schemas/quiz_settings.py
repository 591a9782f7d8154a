"""Versioned value types stored inside JSON columns.

Quiz settings and submission metadata used to travel as open-ended dicts. They are
typed here and carry a ``schema_version`` so new fields can be added without
untyped access at the call sites.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

QUIZ_SETTINGS_VERSION = 1
SUBMISSION_META_VERSION = 1


class QuizSettings(BaseModel):
    """Per-quiz attempt settings."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    schema_version: int = Field(default=QUIZ_SETTINGS_VERSION)
    time_limit_minutes: int | None = Field(default=None, ge=1, description="null = untimed")
    shuffle_questions: bool = Field(default=False)
    max_attempts: int = Field(default=1, ge=1)
    allow_review: bool = Field(default=True)
    show_results_immediately: bool = Field(default=True)
    available_from: datetime | None = None
    available_until: datetime | None = None

    @field_validator("available_from", "available_until")
    @classmethod
    def to_naive_utc(cls, value: datetime | None) -> datetime | None:
        """Windows are compared with the naive-UTC engine clock."""
        if value is not None and value.tzinfo is not None:
            return value.astimezone(UTC).replace(tzinfo=None)
        return value

    @model_validator(mode="after")
    def check_window(self):
        if self.available_from and self.available_until and self.available_from > self.available_until:
            raise ValueError("available_from must not be after available_until")
        return self

    @classmethod
    def from_stored(cls, data: dict[str, Any] | None) -> "QuizSettings":
        """Load settings written by any schema version."""
        payload = dict(data or {})
        # Version 0 payloads stored a zero time limit to mean "untimed"
        if payload.get("schema_version", 0) == 0 and not payload.get("time_limit_minutes"):
            payload["time_limit_minutes"] = None
        payload["schema_version"] = QUIZ_SETTINGS_VERSION
        return cls.model_validate(payload)

    def is_open_at(self, now: datetime) -> bool:
        if self.available_from and now < self.available_from:
            return False
        if self.available_until and now > self.available_until:
            return False
        return True


class SubmissionMeta(BaseModel):
    """Metadata recorded with a submission."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    schema_version: int = Field(default=SUBMISSION_META_VERSION)
    time_taken_seconds: int = 0
    auto_submitted: bool = False
    timeout_submission: bool = False
    answered_questions: int = 0
