"""Prompt templates for tips and scheduling suggestions."""

from __future__ import annotations

from collections.abc import Sequence

from cogload.metrics.types import ClassLoadDay, Conflict, DailyLoad, DeadlineRecord

STUDENT_SYSTEM_PROMPT = (
    "You are a supportive academic advisor helping students manage their workload. Be encouraging but realistic."
)
PROFESSOR_SYSTEM_PROMPT = (
    "You are an AI assistant helping professors optimize course scheduling. Be professional and data-driven."
)
CONFLICT_SYSTEM_PROMPT = "You are an academic scheduling assistant. Be brief and concrete."


def student_tip_prompt(student_name: str, load_data: Sequence[DailyLoad]) -> str:
    formatted = "\n".join(
        f"- {d.date.isoformat()}: {d.load_score}% load ({d.deadlines_count} deadlines, {d.risk_level} level)"
        for d in load_data
    )
    return f"""Student: {student_name}

Their upcoming workload:
{formatted}

Provide:
1. Brief analysis of their situation (2 sentences max)
2. One specific, actionable tip to manage this workload
3. Brief encouragement

Keep it under 100 words, friendly and supportive tone."""


def professor_suggestion_prompt(
    course_name: str,
    overloaded_days: Sequence[ClassLoadDay],
    deadlines: Sequence[DeadlineRecord],
    conflicts: Sequence[Conflict],
) -> str:
    overload_info = "\n".join(f"- {d.date.isoformat()}: {d.average_load}% average class load" for d in overloaded_days)
    deadline_info = "\n".join(
        f"- {d.title} ({d.type or 'assignment'}, difficulty {d.difficulty}) on "
        f"{d.deadline_date.isoformat() if d.deadline_date else 'no date'}"
        for d in deadlines
    )
    conflict_info = ""
    if conflicts:
        conflict_lines = "\n".join(f"- {c.date.isoformat()}: {c.count} deadlines ({c.severity} severity)" for c in conflicts)
        conflict_info = f"\nConflicts detected:\n{conflict_lines}"

    return f"""Course: {course_name}

Overloaded periods:
{overload_info or "- none"}

Current deadlines:
{deadline_info or "- none"}
{conflict_info}

Suggest:
1. Which deadline(s) should be rescheduled
2. Better alternative dates
3. Brief justification

Keep it professional, under 120 words."""


def conflict_warning_prompt(conflict: Conflict) -> str:
    deadline_list = "\n".join(f"- {d.title} ({d.type or 'assignment'}, difficulty {d.difficulty})" for d in conflict.deadlines)
    alternatives = ""
    if conflict.suggested_dates:
        alt_lines = "\n".join(
            f"- {s.date.isoformat()} ({s.existing_deadlines} existing deadlines)" for s in conflict.suggested_dates
        )
        alternatives = f"\nLess crowded dates nearby:\n{alt_lines}\n"

    return f"""Multiple deadlines on {conflict.date.isoformat()}:
{deadline_list}

Severity: {conflict.severity}
{alternatives}
Explain why this is problematic and suggest action in 2-3 sentences."""
