"""Same-day deadline conflict detection and rescheduling suggestions.

Grouping is by each deadline's own calendar date, so detection needs no
reference date. A conflict is any day carrying more than one deadline.

Severity (first matching rule wins):
1. at least one exam in a group of 2+  -> critical
2. 3+ deadlines                        -> high
3. average difficulty >= 4             -> high
4. otherwise                           -> medium

Alternative dates are scored by how empty the candidate day already is and
how close it is to the conflicted day:
    suitability = max(0, 10 - 3 * existing) + max(0, 10 - |offset|)
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from typing import Any

from cogload.metrics.types import (
    AlternativeDateSuggestion,
    Conflict,
    ConflictDeadline,
    ConflictSeverity,
    DeadlineRecord,
    coerce_deadlines,
)

DEFAULT_DIFFICULTY = 3
HIGH_AVERAGE_DIFFICULTY = 4
HIGH_SEVERITY_GROUP_SIZE = 3
DEFAULT_SUGGESTION_RANGE_DAYS = 14
MAX_SUGGESTIONS = 3


def effective_difficulty(deadline: DeadlineRecord) -> int:
    """Difficulty used for sums and averages; out-of-range or missing counts as medium (3)."""
    if deadline.difficulty is not None and 1 <= deadline.difficulty <= 5:
        return deadline.difficulty
    return DEFAULT_DIFFICULTY


def group_by_date(deadlines: Iterable[Any]) -> dict[date, list[DeadlineRecord]]:
    """Group deadlines by calendar day, in order of first appearance. Undated deadlines are skipped."""
    grouped: dict[date, list[DeadlineRecord]] = {}
    for deadline in coerce_deadlines(deadlines):
        if deadline.deadline_date is None:
            continue
        grouped.setdefault(deadline.deadline_date, []).append(deadline)
    return grouped


def calculate_severity(deadlines: Sequence[DeadlineRecord]) -> ConflictSeverity:
    count = len(deadlines)
    has_exam = any(d.type == "exam" for d in deadlines)
    avg_difficulty = sum(effective_difficulty(d) for d in deadlines) / count if count else 0.0

    if has_exam and count >= 2:
        return "critical"
    if count >= HIGH_SEVERITY_GROUP_SIZE:
        return "high"
    if avg_difficulty >= HIGH_AVERAGE_DIFFICULTY:
        return "high"
    return "medium"


def detect_conflicts(deadlines: Iterable[Any]) -> list[Conflict]:
    """Find every calendar day with more than one deadline.

    Returns:
        Conflicts sorted by total_difficulty, highest first. Equal totals keep
        the order in which their day first appeared in the input.
    """
    conflicts: list[Conflict] = []

    for day, items in group_by_date(deadlines).items():
        if len(items) <= 1:
            continue
        conflicts.append(
            Conflict(
                date=day,
                count=len(items),
                deadlines=[
                    ConflictDeadline(
                        id=d.id,
                        title=d.title,
                        type=d.type,
                        difficulty=d.difficulty,
                        course_name=d.course_name,
                    )
                    for d in items
                ],
                severity=calculate_severity(items),
                total_difficulty=sum(effective_difficulty(d) for d in items),
            )
        )

    return sorted(conflicts, key=lambda c: c.total_difficulty, reverse=True)


def calculate_suitability(existing_deadlines: int, days_away: int) -> int:
    load_score = max(0, 10 - existing_deadlines * 3)
    proximity_score = max(0, 10 - days_away)
    return load_score + proximity_score


def suggest_alternative_dates(
    conflict: Conflict,
    all_deadlines: Iterable[Any],
    days_range: int = DEFAULT_SUGGESTION_RANGE_DAYS,
) -> list[AlternativeDateSuggestion]:
    """Propose up to three less crowded days near a conflict.

    Candidates are scanned from -(days_range // 2) to +(days_range // 2),
    earliest first, skipping the conflicted day itself. An odd range is
    floored, so 15 scans the same +/-7 window as 14. Ties keep scan order.

    Args:
        conflict: Conflict whose date is being moved
        all_deadlines: Every deadline that could already sit on a candidate day
        days_range: Width of the window around the conflict

    Returns:
        At most three suggestions, best suitability first.
    """
    half_range = days_range // 2
    existing_by_day = {day: len(items) for day, items in group_by_date(all_deadlines).items()}

    suggestions: list[AlternativeDateSuggestion] = []
    for offset in range(-half_range, half_range + 1):
        if offset == 0:
            continue
        candidate = conflict.date + timedelta(days=offset)
        existing = existing_by_day.get(candidate, 0)
        suggestions.append(
            AlternativeDateSuggestion(
                date=candidate,
                existing_deadlines=existing,
                days_from_conflict=offset,
                suitability_score=calculate_suitability(existing, abs(offset)),
            )
        )

    suggestions.sort(key=lambda s: s.suitability_score, reverse=True)
    return suggestions[:MAX_SUGGESTIONS]


def detect_conflicts_with_suggestions(
    deadlines: Iterable[Any],
    days_range: int = DEFAULT_SUGGESTION_RANGE_DAYS,
) -> list[Conflict]:
    """detect_conflicts, with suggested_dates filled in for each conflict."""
    records = coerce_deadlines(deadlines)
    return [
        conflict.model_copy(update={"suggested_dates": suggest_alternative_dates(conflict, records, days_range)})
        for conflict in detect_conflicts(records)
    ]
