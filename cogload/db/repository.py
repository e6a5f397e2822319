"""Store queries used by the load pipeline.

Everything the engine reads comes out of here as DeadlineRecord snapshots;
everything it writes back (daily snapshots, tips) goes in through here.
"""

from __future__ import annotations

from datetime import datetime

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cogload.db.models import AiTip, Course, Deadline, Enrollment, StudentLoad, User
from cogload.metrics.types import DailyLoad, DeadlineRecord


def _to_record(deadline: Deadline, course_name: str | None) -> DeadlineRecord:
    return DeadlineRecord(
        id=deadline.id,
        title=deadline.title,
        course_id=deadline.course_id,
        course_name=course_name,
        deadline_date=deadline.deadline_date,
        difficulty=deadline.difficulty,
        type=deadline.type,
    )


def list_students(session: Session) -> list[User]:
    return list(session.execute(select(User).where(User.role == "student").order_by(User.id)).scalars().all())


def get_user(session: Session, user_id: str) -> User | None:
    return session.get(User, user_id)


def get_course(session: Session, course_id: str) -> Course | None:
    return session.get(Course, course_id)


def get_student_deadlines(session: Session, student_id: str) -> list[DeadlineRecord]:
    """All deadlines of the courses a student is enrolled in."""
    rows = session.execute(
        select(Deadline, Course.name)
        .join(Course, Course.id == Deadline.course_id)
        .join(Enrollment, Enrollment.course_id == Deadline.course_id)
        .where(Enrollment.student_id == student_id)
        .order_by(Deadline.deadline_date, Deadline.id)
    ).all()
    return [_to_record(deadline, course_name) for deadline, course_name in rows]


def get_course_deadlines(session: Session, course_id: str) -> list[DeadlineRecord]:
    rows = session.execute(
        select(Deadline, Course.name)
        .join(Course, Course.id == Deadline.course_id)
        .where(Deadline.course_id == course_id)
        .order_by(Deadline.deadline_date, Deadline.id)
    ).all()
    return [_to_record(deadline, course_name) for deadline, course_name in rows]


def get_course_student_ids(session: Session, course_id: str) -> list[str]:
    result = session.execute(
        select(Enrollment.student_id).where(Enrollment.course_id == course_id).order_by(Enrollment.student_id)
    )
    return [row[0] for row in result.all()]


def get_course_student_deadline_sets(session: Session, course_id: str) -> list[list[DeadlineRecord]]:
    """One deadline set per enrolled student (each covers all of that student's courses)."""
    return [get_student_deadlines(session, student_id) for student_id in get_course_student_ids(session, course_id)]


def _apply_daily_load(record: StudentLoad, daily_load: DailyLoad) -> None:
    record.load_score = daily_load.load_score
    record.risk_level = daily_load.risk_level
    record.deadlines_count = daily_load.deadlines_count
    record.deadlines = [c.model_dump(mode="json") for c in daily_load.deadlines]


def _find_student_load(session: Session, student_id: str, daily_load: DailyLoad) -> StudentLoad | None:
    return session.execute(
        select(StudentLoad).where(
            StudentLoad.student_id == student_id,
            StudentLoad.date == daily_load.date,
        )
    ).scalar_one_or_none()


def upsert_student_load(session: Session, student_id: str, daily_load: DailyLoad) -> StudentLoad:
    """Insert or update the (student_id, date) snapshot.

    The unique constraint keeps at most one row per student and day; losing an
    insert race to another writer turns into an update of the winner's row.
    """
    existing = _find_student_load(session, student_id, daily_load)
    if existing is not None:
        _apply_daily_load(existing, daily_load)
        session.flush()
        return existing

    record = StudentLoad(student_id=student_id, date=daily_load.date)
    _apply_daily_load(record, daily_load)
    try:
        with session.begin_nested():
            session.add(record)
    except IntegrityError as e:
        error_msg = str(e).lower()
        if "unique" not in error_msg and "duplicate" not in error_msg:
            raise
        logger.warning(f"[STUDENT_LOAD] Concurrent snapshot for student_id={student_id} date={daily_load.date}, updating instead")
        existing = _find_student_load(session, student_id, daily_load)
        if existing is None:
            raise
        _apply_daily_load(existing, daily_load)
        session.flush()
        return existing

    return record


def create_tip(
    session: Session,
    *,
    user_id: str,
    tip_text: str,
    tip_type: str,
    priority: str,
    created_at: datetime,
    expires_at: datetime,
    load_score: int | None = None,
    risk_level: str | None = None,
    course_id: str | None = None,
    affected_dates: list[str] | None = None,
) -> AiTip:
    tip = AiTip(
        user_id=user_id,
        tip_text=tip_text,
        tip_type=tip_type,
        priority=priority,
        load_score=load_score,
        risk_level=risk_level,
        course_id=course_id,
        affected_dates=affected_dates,
        created_at=created_at,
        expires_at=expires_at,
    )
    session.add(tip)
    session.flush()
    return tip


def get_user_tips(session: Session, user_id: str, now: datetime, limit: int = 5) -> list[AiTip]:
    """Unexpired tips for a user, newest first."""
    return list(
        session.execute(
            select(AiTip)
            .where(AiTip.user_id == user_id, AiTip.expires_at > now)
            .order_by(AiTip.created_at.desc())
            .limit(limit)
        )
        .scalars()
        .all()
    )


def mark_tip_as_read(session: Session, tip_id: str) -> AiTip | None:
    tip = session.get(AiTip, tip_id)
    if tip is None:
        return None
    tip.is_read = True
    session.flush()
    return tip
