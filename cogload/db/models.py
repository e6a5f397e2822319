from __future__ import annotations

import datetime as dt
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""


class User(Base):
    """Students, professors and admins.

    Identity comes from the external identity provider; only the fields the
    load pipeline needs are stored here.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True, unique=True)
    role: Mapped[str] = mapped_column(String, nullable=False, default="student", index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    professor_id: Mapped[str | None] = mapped_column(String, ForeignKey("users.id"), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)


class Enrollment(Base):
    """Student membership in a course (a student's deadlines are their courses' deadlines)."""

    __tablename__ = "enrollments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)
    course_id: Mapped[str] = mapped_column(String, ForeignKey("courses.id"), nullable=False, index=True)

    __table_args__ = (UniqueConstraint("student_id", "course_id", name="uq_enrollment_student_course"),)


class Deadline(Base):
    """Course deadline as entered by the professor.

    difficulty is expected in 1..5 and type in {assignment, project, exam};
    both are nullable because the load engine degrades gracefully on bad values.
    """

    __tablename__ = "deadlines"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    course_id: Mapped[str] = mapped_column(String, ForeignKey("courses.id"), nullable=False, index=True)
    deadline_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    difficulty: Mapped[int | None] = mapped_column(Integer, nullable=True)
    type: Mapped[str | None] = mapped_column(String, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)


class StudentLoad(Base):
    """Daily cognitive load snapshot per student.

    Written by the daily load job. Unique constraint: (student_id, date), so a
    rerun on the same day updates the row instead of adding another.
    """

    __tablename__ = "student_loads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    load_score: Mapped[int] = mapped_column(Integer, nullable=False)
    risk_level: Mapped[str] = mapped_column(String, nullable=False)
    deadlines_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deadlines: Mapped[list | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (UniqueConstraint("student_id", "date", name="uq_student_load_student_date"),)


class AiTip(Base):
    """Generated tip or suggestion shown to a student or professor.

    tip_type: student_workload | professor_suggestion | conflict_warning | study_tips
    priority: low | medium | high
    Tips stop being served once expires_at has passed.
    """

    __tablename__ = "ai_tips"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    tip_text: Mapped[str] = mapped_column(Text, nullable=False)
    tip_type: Mapped[str] = mapped_column(String, nullable=False, default="student_workload")
    load_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    risk_level: Mapped[str | None] = mapped_column(String, nullable=True)
    course_id: Mapped[str | None] = mapped_column(String, nullable=True)
    affected_dates: Mapped[list | None] = mapped_column(JSON, nullable=True)
    priority: Mapped[str] = mapped_column(String, nullable=False, default="medium")
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)

    __table_args__ = (Index("idx_ai_tips_user_created", "user_id", "created_at"),)
