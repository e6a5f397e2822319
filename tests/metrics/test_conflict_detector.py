"""Tests for same-day conflict detection and alternative date suggestions."""

from datetime import date, datetime, timedelta

import pytest

from cogload.metrics.conflict_detector import (
    calculate_suitability,
    detect_conflicts,
    detect_conflicts_with_suggestions,
    suggest_alternative_dates,
)
from cogload.metrics.types import DeadlineRecord

DAY = date(2025, 3, 10)


def _deadline(title: str, on: date = DAY, difficulty=3, deadline_type="assignment") -> DeadlineRecord:
    return DeadlineRecord(id=title.lower(), title=title, deadline_date=on, difficulty=difficulty, type=deadline_type)


def test_exam_in_group_is_critical():
    conflicts = detect_conflicts([
        _deadline("Midterm", difficulty=4, deadline_type="exam"),
        _deadline("Essay", difficulty=2),
    ])

    assert len(conflicts) == 1
    conflict = conflicts[0]
    assert conflict.date == DAY
    assert conflict.count == 2
    assert conflict.severity == "critical"
    assert conflict.total_difficulty == 6
    assert [d.title for d in conflict.deadlines] == ["Midterm", "Essay"]
    assert conflict.suggested_dates == []


def test_three_deadlines_is_high():
    conflicts = detect_conflicts([_deadline("A", difficulty=1), _deadline("B", difficulty=1), _deadline("C", difficulty=1)])

    assert conflicts[0].severity == "high"
    assert conflicts[0].total_difficulty == 3


def test_high_average_difficulty_is_high():
    conflicts = detect_conflicts([_deadline("A", difficulty=4), _deadline("B", difficulty=4, deadline_type="project")])

    assert conflicts[0].severity == "high"


def test_otherwise_medium():
    conflicts = detect_conflicts([_deadline("A", difficulty=3), _deadline("B", difficulty=4)])

    assert conflicts[0].severity == "medium"


def test_single_deadline_days_are_not_conflicts():
    deadlines = [_deadline("A"), _deadline("B", on=DAY + timedelta(days=1)), _deadline("C", on=DAY + timedelta(days=2))]

    assert detect_conflicts(deadlines) == []


def test_no_deadlines():
    assert detect_conflicts([]) == []


def test_sorted_by_total_difficulty_with_stable_ties():
    first = DAY
    second = DAY + timedelta(days=3)
    third = DAY + timedelta(days=6)
    deadlines = [
        _deadline("A1", on=first, difficulty=2),
        _deadline("A2", on=first, difficulty=2),
        _deadline("B1", on=second, difficulty=5),
        _deadline("B2", on=second, difficulty=5),
        _deadline("C1", on=third, difficulty=1),
        _deadline("C2", on=third, difficulty=3),
    ]

    conflicts = detect_conflicts(deadlines)

    assert [(c.date, c.total_difficulty) for c in conflicts] == [(second, 10), (first, 4), (third, 4)]


def test_groups_by_calendar_day_ignoring_time():
    deadlines = [
        DeadlineRecord(title="Morning", deadline_date=datetime(2025, 3, 10, 8, 0), difficulty=2, type="assignment"),
        DeadlineRecord(title="Night", deadline_date=datetime(2025, 3, 10, 23, 30), difficulty=2, type="assignment"),
    ]

    conflicts = detect_conflicts(deadlines)

    assert len(conflicts) == 1
    assert conflicts[0].date == DAY


def test_missing_difficulty_counts_as_three():
    conflicts = detect_conflicts([_deadline("A", difficulty=None), _deadline("B", difficulty=5)])

    assert conflicts[0].total_difficulty == 8
    assert conflicts[0].severity == "high"


def test_unparseable_difficulty_counts_as_three():
    deadlines = [
        {"title": "A", "deadline_date": DAY, "difficulty": "--3", "type": "assignment"},
        {"title": "B", "deadline_date": DAY, "difficulty": "²", "type": "assignment"},
    ]

    conflicts = detect_conflicts(deadlines)

    assert conflicts[0].total_difficulty == 6
    assert conflicts[0].severity == "medium"


def test_undated_deadlines_ignored():
    deadlines = [DeadlineRecord(title="Floating", difficulty=5, type="exam"), DeadlineRecord(title="Other", difficulty=5, type="exam")]

    assert detect_conflicts(deadlines) == []


@pytest.mark.parametrize(
    ("existing", "days_away", "score"),
    [(0, 1, 19), (1, 1, 16), (4, 1, 9), (0, 10, 10), (0, 12, 10), (5, 12, 0)],
)
def test_suitability(existing, days_away, score):
    assert calculate_suitability(existing, days_away) == score


def test_suggestions_on_empty_calendar_follow_scan_order():
    deadlines = [_deadline("A"), _deadline("B")]
    conflict = detect_conflicts(deadlines)[0]

    suggestions = suggest_alternative_dates(conflict, deadlines)

    assert [(s.days_from_conflict, s.suitability_score) for s in suggestions] == [(-1, 19), (1, 19), (-2, 18)]
    assert suggestions[0].date == DAY - timedelta(days=1)
    assert all(s.existing_deadlines == 0 for s in suggestions)


def test_suggestions_avoid_busy_days():
    deadlines = [_deadline("A"), _deadline("B"), _deadline("Busy", on=DAY - timedelta(days=1))]
    conflict = detect_conflicts(deadlines)[0]

    suggestions = suggest_alternative_dates(conflict, deadlines)

    assert [(s.days_from_conflict, s.suitability_score) for s in suggestions] == [(1, 19), (-2, 18), (2, 18)]


def test_suggestions_never_include_conflict_day_and_are_sorted():
    deadlines = [_deadline("A"), _deadline("B")]
    conflict = detect_conflicts(deadlines)[0]

    suggestions = suggest_alternative_dates(conflict, deadlines)

    assert 0 < len(suggestions) <= 3
    assert all(s.days_from_conflict != 0 for s in suggestions)
    scores = [s.suitability_score for s in suggestions]
    assert scores == sorted(scores, reverse=True)


def test_odd_range_is_floored():
    deadlines = [_deadline("A"), _deadline("B")]
    conflict = detect_conflicts(deadlines)[0]

    assert suggest_alternative_dates(conflict, deadlines, days_range=15) == suggest_alternative_dates(conflict, deadlines, days_range=14)


def test_narrow_range():
    deadlines = [_deadline("A"), _deadline("B")]
    conflict = detect_conflicts(deadlines)[0]

    suggestions = suggest_alternative_dates(conflict, deadlines, days_range=2)

    assert [s.days_from_conflict for s in suggestions] == [-1, 1]
    assert suggest_alternative_dates(conflict, deadlines, days_range=1) == []


def test_detect_conflicts_with_suggestions():
    deadlines = [
        _deadline("Exam", difficulty=5, deadline_type="exam"),
        _deadline("Lab", difficulty=2),
        _deadline("Other", on=DAY + timedelta(days=1)),
    ]

    conflicts = detect_conflicts_with_suggestions(deadlines)

    assert len(conflicts) == 1
    assert conflicts[0].severity == "critical"
    # +1 already holds a deadline, so -1 (19) beats it
    assert [s.days_from_conflict for s in conflicts[0].suggested_dates] == [-1, -2, 2]
