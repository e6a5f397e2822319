"""Daily cognitive load aggregation.

Scores every student for "today", stores one snapshot per (student, date),
and asks for a workload tip when the student is at warning or danger level.

Students are processed one at a time. A failure for one student is logged and
counted, and the loop moves on. A failed tip never undoes the snapshot that
was already stored for that student.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime
from zoneinfo import ZoneInfo

from loguru import logger

from cogload.config.settings import settings
from cogload.db import repository
from cogload.db.session import get_session
from cogload.metrics.load_calculator import calculate_daily_load, calculate_load_range
from cogload.metrics.types import DailyLoad, DeadlineRecord
from cogload.services.llm.text_generator import PydanticAITextGenerator
from cogload.services.tip_service import SessionFactory, TipService

TIP_RISK_LEVELS = frozenset({"warning", "danger"})
TIP_FORECAST_DAYS = 7


def resolve_today() -> date:
    """Today's date in the job's configured timezone."""
    return datetime.now(ZoneInfo(settings.daily_job_timezone)).date()


def _score_student(
    session_factory: SessionFactory,
    student_id: str,
    today: date,
) -> tuple[list[DeadlineRecord], DailyLoad]:
    with session_factory() as session:
        deadlines = repository.get_student_deadlines(session, student_id)
        today_load = calculate_daily_load(deadlines, today)
        repository.upsert_student_load(session, student_id, today_load)
    return deadlines, today_load


async def run_daily_load_calculation_async(
    today: date | None = None,
    *,
    tip_service: TipService | None = None,
    session_factory: SessionFactory = get_session,
) -> dict[str, int]:
    """Compute and store today's load for every student.

    Args:
        today: Day to score; defaults to today in settings.daily_job_timezone
        tip_service: Service used for warning/danger students (a pydantic_ai
            backed one is built when omitted)
        session_factory: Session context manager factory

    Returns:
        Dictionary with students_processed, students_failed, tips_generated, tips_failed
    """
    today = today or resolve_today()
    if tip_service is None:
        tip_service = TipService(PydanticAITextGenerator(), session_factory=session_factory)

    logger.info(f"[DAILY_LOAD] Starting daily load calculation for {today.isoformat()}")

    with session_factory() as session:
        students = [(student.id, student.name) for student in repository.list_students(session)]

    if not students:
        logger.info("[DAILY_LOAD] No students found")
        return {"students_processed": 0, "students_failed": 0, "tips_generated": 0, "tips_failed": 0}

    logger.info(f"[DAILY_LOAD] Processing {len(students)} students")

    students_processed = 0
    students_failed = 0
    tips_generated = 0
    tips_failed = 0

    for idx, (student_id, student_name) in enumerate(students, 1):
        try:
            deadlines, today_load = _score_student(session_factory, student_id, today)
        except Exception as e:
            logger.exception(f"[DAILY_LOAD] [{idx}/{len(students)}] Failed to process student {student_id}: {e}")
            students_failed += 1
            continue

        students_processed += 1
        logger.debug(
            f"[DAILY_LOAD] [{idx}/{len(students)}] student_id={student_id} "
            f"load_score={today_load.load_score} risk_level={today_load.risk_level}"
        )

        if today_load.risk_level not in TIP_RISK_LEVELS:
            continue

        load_data = calculate_load_range(deadlines, today, TIP_FORECAST_DAYS)
        try:
            await tip_service.generate_student_tip(student_id, student_name, load_data)
            tips_generated += 1
        except Exception as e:
            logger.error(f"[DAILY_LOAD] Tip generation failed for student {student_id}: {e}")
            tips_failed += 1

    logger.info(
        f"[DAILY_LOAD] Daily load calculation complete: students_processed={students_processed}, "
        f"students_failed={students_failed}, tips_generated={tips_generated}, tips_failed={tips_failed}"
    )

    return {
        "students_processed": students_processed,
        "students_failed": students_failed,
        "tips_generated": tips_generated,
        "tips_failed": tips_failed,
    }


def run_daily_load_calculation(
    today: date | None = None,
    *,
    tip_service: TipService | None = None,
    session_factory: SessionFactory = get_session,
) -> dict[str, int]:
    """Synchronous entry point for the scheduler thread."""
    return asyncio.run(
        run_daily_load_calculation_async(today, tip_service=tip_service, session_factory=session_factory)
    )
