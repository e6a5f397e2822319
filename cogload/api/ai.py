"""Load, conflict and tip endpoints.

Thin pass-throughs: fetch deadlines from the store, run the engine, return the
result. "Today" is resolved here, never inside the engine.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel
from sqlalchemy.orm import Session

from cogload.db import repository
from cogload.db.session import get_db
from cogload.jobs.daily_load import TIP_FORECAST_DAYS, resolve_today
from cogload.metrics.conflict_detector import detect_conflicts, detect_conflicts_with_suggestions
from cogload.metrics.load_calculator import calculate_class_load_range, calculate_load_range, find_peak_load_days
from cogload.services.errors import TipGenerationError
from cogload.services.llm.text_generator import PydanticAITextGenerator
from cogload.services.tip_service import TipService

router = APIRouter(prefix="/ai", tags=["ai"])

CLASS_LOAD_DAYS = 14


class StudentTipRequest(BaseModel):
    student_id: str


class ProfessorSuggestionRequest(BaseModel):
    course_id: str


class ConflictWarningRequest(BaseModel):
    course_id: str


def get_tip_service() -> TipService:
    return TipService(PydanticAITextGenerator())


def _tip_failure_response(error: TipGenerationError, payload: dict) -> JSONResponse:
    # Computed load/conflict data is still returned alongside the failure
    return JSONResponse(
        status_code=502,
        content=jsonable_encoder({"success": False, "error": "tip generation failed", "detail": str(error), **payload}),
    )


@router.get("/load/{student_id}")
def get_student_load(
    student_id: str,
    days: int = Query(default=30, le=365),
    start: date | None = None,
    db: Session = Depends(get_db),
):
    """Load series for a student plus the peak days in it."""
    student = repository.get_user(db, student_id)
    if student is None:
        raise HTTPException(status_code=404, detail="Student not found")

    deadlines = repository.get_student_deadlines(db, student_id)
    load_data = calculate_load_range(deadlines, start or resolve_today(), days)
    logger.debug(f"Load requested: student_id={student_id}, days={days}, deadlines={len(deadlines)}")
    return {
        "success": True,
        "load_data": load_data,
        "peak_days": find_peak_load_days(load_data),
    }


@router.get("/conflicts/{course_id}")
def get_course_conflicts(course_id: str, db: Session = Depends(get_db)):
    course = repository.get_course(db, course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not found")

    deadlines = repository.get_course_deadlines(db, course_id)
    return {"success": True, "conflicts": detect_conflicts_with_suggestions(deadlines)}


@router.post("/student-tip")
async def create_student_tip(
    request: StudentTipRequest,
    db: Session = Depends(get_db),
    tip_service: TipService = Depends(get_tip_service),
):
    student = repository.get_user(db, request.student_id)
    if student is None:
        raise HTTPException(status_code=404, detail="Student not found")

    deadlines = repository.get_student_deadlines(db, student.id)
    load_data = calculate_load_range(deadlines, resolve_today(), TIP_FORECAST_DAYS)

    try:
        result = await tip_service.generate_student_tip(student.id, student.name, load_data)
    except TipGenerationError as e:
        return _tip_failure_response(e, {"load_data": load_data})

    return {
        "success": True,
        "tip": result.tip,
        "tip_id": result.tip_id,
        "priority": result.priority,
        "load_data": load_data,
    }


@router.post("/professor-suggestion")
async def create_professor_suggestion(
    request: ProfessorSuggestionRequest,
    db: Session = Depends(get_db),
    tip_service: TipService = Depends(get_tip_service),
):
    course = repository.get_course(db, request.course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not found")

    deadlines = repository.get_course_deadlines(db, course.id)
    conflicts = detect_conflicts(deadlines)
    class_load = calculate_class_load_range(
        repository.get_course_student_deadline_sets(db, course.id),
        resolve_today(),
        CLASS_LOAD_DAYS,
    )

    try:
        result = await tip_service.generate_professor_suggestion(
            course_id=course.id,
            course_name=course.name,
            professor_id=course.professor_id,
            class_load=class_load,
            deadlines=deadlines,
            conflicts=conflicts,
        )
    except TipGenerationError as e:
        return _tip_failure_response(e, {"class_load_data": class_load, "conflicts": conflicts})

    return {
        "success": True,
        "suggestion": result.suggestion,
        "priority": result.priority,
        "class_load_data": class_load,
        "conflicts": conflicts,
    }


@router.post("/conflict-warning")
async def create_conflict_warning(
    request: ConflictWarningRequest,
    db: Session = Depends(get_db),
    tip_service: TipService = Depends(get_tip_service),
):
    """Warn the course professor about its most demanding same-day conflict."""
    course = repository.get_course(db, request.course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not found")
    if not course.professor_id:
        raise HTTPException(status_code=404, detail="Course has no professor")

    conflicts = detect_conflicts_with_suggestions(repository.get_course_deadlines(db, course.id))
    if not conflicts:
        return {"success": True, "warning": None, "tip_id": None, "conflicts": []}

    try:
        result = await tip_service.generate_conflict_warning(course.professor_id, conflicts[0], course_id=course.id)
    except TipGenerationError as e:
        return _tip_failure_response(e, {"conflicts": conflicts})

    return {
        "success": True,
        "warning": result.tip,
        "tip_id": result.tip_id,
        "priority": result.priority,
        "conflicts": conflicts,
    }


@router.get("/tips/{user_id}")
def get_user_tips(
    user_id: str,
    limit: int = Query(default=5, ge=1, le=50),
    tip_service: TipService = Depends(get_tip_service),
):
    return {"success": True, "tips": tip_service.get_user_tips(user_id, limit=limit)}


@router.put("/tips/{tip_id}/read")
def mark_tip_read(tip_id: str, tip_service: TipService = Depends(get_tip_service)):
    tip = tip_service.mark_tip_as_read(tip_id)
    if tip is None:
        raise HTTPException(status_code=404, detail="Tip not found")
    return {"success": True, "tip": tip}
