"""Daily cognitive load computation.

Turns a snapshot of deadlines into a bounded daily stress score (0-100), a
risk classification, and day-range series of such scores.

Formula (per deadline):
    load = base_points(difficulty) x type_multiplier(type) x proximity_factor(days_until)

Rules:
- Only deadlines with 0 <= days_until <= 14 contribute to a day's score
- load_score = min(round(sum of loads), 100), rounded half-up before clamping
- Risk: >= 70 danger, >= 40 warning, otherwise safe

Properties:
- Deterministic: the target date is the only time input, the clock is never read
- Pure: no I/O, no shared state, safe to call concurrently
- Lenient: malformed difficulty/type values fall back to defaults, undated
  deadlines are ignored
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta
from typing import Any

from cogload.metrics.types import (
    UNKNOWN_COURSE_NAME,
    ClassLoadDay,
    DailyLoad,
    DeadlineContribution,
    DeadlineRecord,
    RiskLevel,
    coerce_deadlines,
    to_calendar_date,
)

LOAD_WINDOW_DAYS = 14
MAX_LOAD_SCORE = 100

DANGER_THRESHOLD = 70
WARNING_THRESHOLD = 40
PEAK_LOAD_THRESHOLD = 60

DEFAULT_BASE_POINTS = 20
DIFFICULTY_BASE_POINTS: dict[int, int] = {
    1: 10,  # Very easy
    2: 15,
    3: 20,
    4: 25,
    5: 30,  # Very hard
}

DEFAULT_TYPE_MULTIPLIER = 1.0
TYPE_MULTIPLIERS: dict[str, float] = {
    "assignment": 1.0,
    "project": 1.5,
    "exam": 2.0,
}


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with .5 going up, unlike Python's banker's rounding."""
    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor


def days_until(deadline_date: date | datetime, target_date: date | datetime) -> int:
    """Whole calendar days from target_date to deadline_date.

    Time of day is ignored on both sides, so a deadline due later the same
    day is 0 days away and yesterday's deadline is -1.
    """
    deadline_day = deadline_date.date() if isinstance(deadline_date, datetime) else deadline_date
    target_day = target_date.date() if isinstance(target_date, datetime) else target_date
    return (deadline_day - target_day).days


def get_base_points(difficulty: int | None) -> int:
    if difficulty is None:
        return DEFAULT_BASE_POINTS
    return DIFFICULTY_BASE_POINTS.get(difficulty, DEFAULT_BASE_POINTS)


def get_type_multiplier(deadline_type: str | None) -> float:
    if deadline_type is None:
        return DEFAULT_TYPE_MULTIPLIER
    return TYPE_MULTIPLIERS.get(deadline_type, DEFAULT_TYPE_MULTIPLIER)


def get_proximity_factor(days: int) -> float:
    """Closer deadlines weigh more.

    Due today = 3x, tomorrow = 2.5x, within 3 days = 2x, within a week = 1.5x,
    then 14 / (days + 1) out to two weeks.

    Note: day 8 (1.56) is slightly above day 7 (1.5). The step and the decay
    are kept exactly as they are; scores depend on these breakpoints.
    """
    if days == 0:
        return 3.0
    if days == 1:
        return 2.5
    if days <= 3:
        return 2.0
    if days <= 7:
        return 1.5
    return LOAD_WINDOW_DAYS / (days + 1)


def calculate_deadline_load(deadline: DeadlineRecord, days: int) -> float:
    """Load points for a single deadline that is `days` away."""
    return get_base_points(deadline.difficulty) * get_type_multiplier(deadline.type) * get_proximity_factor(days)


def get_risk_level(load_score: int) -> RiskLevel:
    if load_score >= DANGER_THRESHOLD:
        return "danger"
    if load_score >= WARNING_THRESHOLD:
        return "warning"
    return "safe"


def _calculate_daily_load(deadlines: Sequence[DeadlineRecord], target_day: date) -> DailyLoad:
    total_load = 0.0
    contributions: list[DeadlineContribution] = []

    for deadline in deadlines:
        if deadline.deadline_date is None:
            continue

        days = days_until(deadline.deadline_date, target_day)
        if days < 0 or days > LOAD_WINDOW_DAYS:
            continue

        load_points = calculate_deadline_load(deadline, days)
        total_load += load_points
        contributions.append(
            DeadlineContribution(
                id=deadline.id,
                title=deadline.title,
                course_name=deadline.course_name or UNKNOWN_COURSE_NAME,
                days_until=days,
                load_points=round_half_up(load_points, 1),
                difficulty=deadline.difficulty,
                type=deadline.type,
            )
        )

    load_score = min(int(round_half_up(total_load)), MAX_LOAD_SCORE)
    contributions.sort(key=lambda c: c.days_until)

    return DailyLoad(
        date=target_day,
        load_score=load_score,
        risk_level=get_risk_level(load_score),
        deadlines_count=len(contributions),
        deadlines=contributions,
    )


def calculate_daily_load(deadlines: Iterable[Any], target_date: date | datetime) -> DailyLoad:
    """Compute the cognitive load for a single calendar day.

    Args:
        deadlines: Deadline records (DeadlineRecord, mappings or ORM rows), any order
        target_date: Day to score; a datetime is truncated to its date

    Returns:
        DailyLoad with the clamped score, its risk level and the per-deadline
        breakdown sorted by days_until (input order kept for ties).

    Example:
        >>> d = DeadlineRecord(title="Essay", deadline_date=date(2025, 3, 10), difficulty=3, type="assignment")
        >>> calculate_daily_load([d], date(2025, 3, 10)).load_score
        60
    """
    target_day = to_calendar_date(target_date)
    if target_day is None:
        raise TypeError(f"target_date must be a date or datetime, got {type(target_date).__name__}")
    return _calculate_daily_load(coerce_deadlines(deadlines), target_day)


def calculate_load_range(
    deadlines: Iterable[Any],
    start_date: date | datetime,
    days: int = 30,
) -> list[DailyLoad]:
    """Compute `days` consecutive daily loads starting at start_date.

    Each day re-evaluates the full deadline set against its own 14-day window.
    Non-positive `days` yields an empty list.
    """
    if days <= 0:
        return []

    start_day = to_calendar_date(start_date)
    if start_day is None:
        raise TypeError(f"start_date must be a date or datetime, got {type(start_date).__name__}")

    records = coerce_deadlines(deadlines)
    return [_calculate_daily_load(records, start_day + timedelta(days=offset)) for offset in range(days)]


def find_peak_load_days(series: Iterable[DailyLoad], threshold: int = PEAK_LOAD_THRESHOLD) -> list[DailyLoad]:
    """Days at or above threshold, heaviest first (stable for equal scores)."""
    return sorted(
        (day for day in series if day.load_score >= threshold),
        key=lambda day: day.load_score,
        reverse=True,
    )


def calculate_class_average_load(per_student_deadlines: Sequence[Iterable[Any]], target_date: date | datetime) -> int:
    """Rounded mean of each student's load_score for target_date (0 when no students)."""
    if not per_student_deadlines:
        return 0

    total = sum(calculate_daily_load(student_deadlines, target_date).load_score for student_deadlines in per_student_deadlines)
    return int(round_half_up(total / len(per_student_deadlines)))


def calculate_class_load_range(
    per_student_deadlines: Sequence[Iterable[Any]],
    start_date: date | datetime,
    days: int = 14,
) -> list[ClassLoadDay]:
    """Class-average load for `days` consecutive days starting at start_date."""
    if days <= 0:
        return []

    start_day = to_calendar_date(start_date)
    if start_day is None:
        raise TypeError(f"start_date must be a date or datetime, got {type(start_date).__name__}")

    student_sets = [coerce_deadlines(student_deadlines) for student_deadlines in per_student_deadlines]
    series: list[ClassLoadDay] = []
    for offset in range(days):
        day = start_day + timedelta(days=offset)
        series.append(ClassLoadDay(date=day, average_load=calculate_class_average_load(student_sets, day)))
    return series
