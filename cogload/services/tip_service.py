"""AI tip and scheduling suggestion service.

Feeds load and conflict results into the injected text generator and stores
the generated text as an expiring tip. The generator call is the only
unbounded-latency step in the pipeline, so it always runs under a timeout.

Failure policy: any generator error, timeout or empty answer raises
TipGenerationError and nothing is stored for that tip. Load and conflict
data computed before the call are untouched.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable, Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from loguru import logger
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from cogload.config.settings import settings
from cogload.db import repository
from cogload.db.session import get_session
from cogload.metrics.load_calculator import WARNING_THRESHOLD
from cogload.metrics.types import ClassLoadDay, Conflict, DailyLoad, DeadlineRecord
from cogload.services.errors import TipGenerationError
from cogload.services.llm.text_generator import TextGenerator
from cogload.services.prompts import (
    CONFLICT_SYSTEM_PROMPT,
    PROFESSOR_SYSTEM_PROMPT,
    STUDENT_SYSTEM_PROMPT,
    conflict_warning_prompt,
    professor_suggestion_prompt,
    student_tip_prompt,
)

OVERLOADED_CLASS_LOAD = 60
PROFESSOR_HIGH_PRIORITY_DAYS = 3

STUDENT_TIP_MAX_TOKENS = 200
PROFESSOR_SUGGESTION_MAX_TOKENS = 250
CONFLICT_WARNING_MAX_TOKENS = 150

ENCOURAGEMENTS = (
    "Great job, {name}! Your workload is well-managed. This is a perfect time to review past material or get ahead on readings.",
    "You're doing excellent, {name}! With light workload ahead, consider helping classmates or exploring extra credit opportunities.",
    "Awesome balance, {name}! Use this lighter period to recharge and prepare for busier times ahead.",
)

SessionFactory = Callable[[], AbstractContextManager[Session]]


@dataclass(frozen=True)
class TipResult:
    tip: str
    tip_id: str | None
    priority: str


@dataclass(frozen=True)
class SuggestionResult:
    suggestion: str
    tip_id: str | None
    priority: str
    overloaded_dates: list[str] = field(default_factory=list)


class TipRecord(BaseModel):
    """Stored tip as returned to callers (detached from the DB session)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    tip_text: str
    tip_type: str
    priority: str
    load_score: int | None = None
    risk_level: str | None = None
    course_id: str | None = None
    affected_dates: list[str] | None = None
    is_read: bool
    created_at: datetime
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def student_tip_priority(risk_level: str) -> str:
    return "high" if risk_level == "danger" else "medium"


class TipService:
    """Generate and store tips.

    Args:
        generator: Text generation capability
        session_factory: Context manager factory yielding a DB session (commits on exit)
        timeout_seconds: Upper bound per generator call (defaults to settings)
        expiry_days: Tip lifetime (defaults to settings)
        clock: Returns "now"; injectable for tests
        rng: Random source for canned encouragements
    """

    def __init__(
        self,
        generator: TextGenerator,
        *,
        session_factory: SessionFactory = get_session,
        timeout_seconds: float | None = None,
        expiry_days: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
        rng: random.Random | None = None,
    ) -> None:
        self.generator = generator
        self.session_factory = session_factory
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.llm_timeout_seconds
        self.expiry_days = expiry_days if expiry_days is not None else settings.tip_expiry_days
        self.clock = clock
        self.rng = rng or random.Random()

    async def _generate(self, prompt: str, *, system_prompt: str, max_tokens: int, tip_type: str) -> str:
        try:
            text = await asyncio.wait_for(
                self.generator.generate(prompt, system_prompt=system_prompt, max_tokens=max_tokens),
                timeout=self.timeout_seconds,
            )
        except TimeoutError as e:
            logger.error(f"[TIPS] Text generation timed out after {self.timeout_seconds}s (tip_type={tip_type})")
            raise TipGenerationError(tip_type, f"timed out after {self.timeout_seconds}s") from e
        except Exception as e:
            logger.error(f"[TIPS] Text generation failed (tip_type={tip_type}): {e}")
            raise TipGenerationError(tip_type, str(e) or type(e).__name__) from e

        if not text or not text.strip():
            logger.warning(f"[TIPS] Text generation returned empty output (tip_type={tip_type})")
            raise TipGenerationError(tip_type, "empty output")
        return text.strip()

    def _store(self, **fields) -> str:
        created_at = self.clock()
        with self.session_factory() as session:
            tip = repository.create_tip(
                session,
                created_at=created_at,
                expires_at=created_at + timedelta(days=self.expiry_days),
                **fields,
            )
            return tip.id

    async def generate_student_tip(self, student_id: str, student_name: str, load_data: Sequence[DailyLoad]) -> TipResult:
        """Workload tip from a student's upcoming load series.

        Days at warning level or above drive the prompt; with none, a canned
        encouragement is stored instead and the generator is not called.
        """
        high_load_days = [d for d in load_data if d.load_score >= WARNING_THRESHOLD]
        if not high_load_days:
            return await self.generate_positive_tip(student_id, student_name)

        tip_text = await self._generate(
            student_tip_prompt(student_name, high_load_days),
            system_prompt=STUDENT_SYSTEM_PROMPT,
            max_tokens=STUDENT_TIP_MAX_TOKENS,
            tip_type="student_workload",
        )

        first = high_load_days[0]
        priority = student_tip_priority(first.risk_level)
        tip_id = self._store(
            user_id=student_id,
            tip_text=tip_text,
            tip_type="student_workload",
            priority=priority,
            load_score=first.load_score,
            risk_level=first.risk_level,
            affected_dates=[d.date.isoformat() for d in high_load_days],
        )
        logger.info(f"[TIPS] Stored student tip {tip_id} for student_id={student_id} (priority={priority})")
        return TipResult(tip=tip_text, tip_id=tip_id, priority=priority)

    async def generate_positive_tip(self, student_id: str, student_name: str) -> TipResult:
        tip_text = self.rng.choice(ENCOURAGEMENTS).format(name=student_name)
        tip_id = self._store(
            user_id=student_id,
            tip_text=tip_text,
            tip_type="study_tips",
            priority="low",
            load_score=0,
            risk_level="safe",
        )
        return TipResult(tip=tip_text, tip_id=tip_id, priority="low")

    async def generate_professor_suggestion(
        self,
        *,
        course_id: str,
        course_name: str,
        professor_id: str | None,
        class_load: Sequence[ClassLoadDay],
        deadlines: Sequence[DeadlineRecord],
        conflicts: Sequence[Conflict],
    ) -> SuggestionResult:
        """Rescheduling suggestion for a course, stored for its professor.

        Priority is high when more than three days are overloaded (class
        average >= 60) or any conflict is critical.
        """
        overloaded_days = [d for d in class_load if d.average_load >= OVERLOADED_CLASS_LOAD]
        suggestion = await self._generate(
            professor_suggestion_prompt(course_name, overloaded_days, deadlines, conflicts),
            system_prompt=PROFESSOR_SYSTEM_PROMPT,
            max_tokens=PROFESSOR_SUGGESTION_MAX_TOKENS,
            tip_type="professor_suggestion",
        )

        has_critical = any(c.severity == "critical" for c in conflicts)
        priority = "high" if len(overloaded_days) > PROFESSOR_HIGH_PRIORITY_DAYS or has_critical else "medium"
        overloaded_dates = [d.date.isoformat() for d in overloaded_days]

        tip_id: str | None = None
        if professor_id:
            tip_id = self._store(
                user_id=professor_id,
                tip_text=suggestion,
                tip_type="professor_suggestion",
                priority=priority,
                course_id=course_id,
                affected_dates=overloaded_dates,
            )
        else:
            logger.warning(f"[TIPS] Course {course_id} has no professor, suggestion not stored")

        return SuggestionResult(suggestion=suggestion, tip_id=tip_id, priority=priority, overloaded_dates=overloaded_dates)

    async def generate_conflict_warning(self, user_id: str, conflict: Conflict, course_id: str | None = None) -> TipResult:
        tip_text = await self._generate(
            conflict_warning_prompt(conflict),
            system_prompt=CONFLICT_SYSTEM_PROMPT,
            max_tokens=CONFLICT_WARNING_MAX_TOKENS,
            tip_type="conflict_warning",
        )
        priority = "high" if conflict.severity == "critical" else "medium"
        tip_id = self._store(
            user_id=user_id,
            tip_text=tip_text,
            tip_type="conflict_warning",
            priority=priority,
            course_id=course_id,
            affected_dates=[conflict.date.isoformat()],
        )
        return TipResult(tip=tip_text, tip_id=tip_id, priority=priority)

    def get_user_tips(self, user_id: str, limit: int = 5) -> list[TipRecord]:
        with self.session_factory() as session:
            tips = repository.get_user_tips(session, user_id, now=self.clock(), limit=limit)
            return [TipRecord.model_validate(tip) for tip in tips]

    def mark_tip_as_read(self, tip_id: str) -> TipRecord | None:
        with self.session_factory() as session:
            tip = repository.mark_tip_as_read(session, tip_id)
            return TipRecord.model_validate(tip) if tip is not None else None
