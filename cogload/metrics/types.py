"""Value objects for cognitive load and conflict computation.

Every model here is frozen: results are computed from an immutable snapshot
of deadlines plus a reference date and are never mutated afterwards.

Input records are lenient on purpose. A malformed difficulty, type or date on
one deadline is coerced to ``None`` instead of raising, and the calculators
apply their documented defaults to it.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator

RiskLevel = Literal["safe", "warning", "danger"]
ConflictSeverity = Literal["medium", "high", "critical"]
DeadlineType = Literal["assignment", "project", "exam"]

UNKNOWN_COURSE_NAME = "Unknown Course"


def to_calendar_date(value: Any) -> dt.date | None:
    """Normalize a date-like value to a calendar day.

    Datetimes keep their own calendar day (time of day is dropped). ISO
    strings are parsed. Anything else yields None.
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return dt.datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            pass
        try:
            return dt.date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


class DeadlineRecord(BaseModel):
    """Read-only deadline snapshot as handed over by the deadline store."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str | None = None
    title: str = ""
    course_id: str | None = None
    course_name: str | None = None
    deadline_date: dt.date | None = None
    difficulty: int | None = None
    type: str | None = None

    @field_validator("id", "course_id", "course_name", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> str | None:
        if value is None:
            return None
        return str(value)

    @field_validator("title", mode="before")
    @classmethod
    def _title_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("deadline_date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> dt.date | None:
        return to_calendar_date(value)

    @field_validator("difficulty", mode="before")
    @classmethod
    def _coerce_difficulty(cls, value: Any) -> int | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                return None
        return None

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> str | None:
        if isinstance(value, str) and value.strip():
            return value.strip().lower()
        return None


def coerce_deadlines(deadlines: Iterable[Any]) -> list[DeadlineRecord]:
    """Materialize any iterable of deadline-like objects as DeadlineRecords.

    Accepts DeadlineRecord instances, mappings, and ORM rows.
    """
    records: list[DeadlineRecord] = []
    for item in deadlines:
        if isinstance(item, DeadlineRecord):
            records.append(item)
        else:
            records.append(DeadlineRecord.model_validate(item))
    return records


class DeadlineContribution(BaseModel):
    """One deadline's share of a day's load."""

    model_config = ConfigDict(frozen=True)

    id: str | None
    title: str
    course_name: str
    days_until: int
    load_points: float
    difficulty: int | None
    type: str | None


class DailyLoad(BaseModel):
    """Cognitive load snapshot for one calendar day."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    load_score: int
    risk_level: RiskLevel
    deadlines_count: int
    deadlines: list[DeadlineContribution]


class ClassLoadDay(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: dt.date
    average_load: int


class ConflictDeadline(BaseModel):
    """Summary of a deadline taking part in a conflict."""

    model_config = ConfigDict(frozen=True)

    id: str | None
    title: str
    type: str | None
    difficulty: int | None
    course_name: str | None


class AlternativeDateSuggestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: dt.date
    existing_deadlines: int
    days_from_conflict: int
    suitability_score: int


class Conflict(BaseModel):
    """Two or more deadlines falling on the same calendar day."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    count: int
    deadlines: list[ConflictDeadline]
    severity: ConflictSeverity
    total_difficulty: int
    suggested_dates: list[AlternativeDateSuggestion] = []
