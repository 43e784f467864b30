from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel
from sqlmodel import Session, select

from shiftgen.dates import InvalidMonth, parse_month
from shiftgen.db import get_session
from shiftgen.labor_law import ShiftRecord, group_by_employee, validate
from shiftgen.models import Assignment, ShiftType, WorkSchedule
from shiftgen.schedule_service import (
    CriticalViolations,
    GenerationResult,
    ScheduleNotDraft,
    ScheduleNotFound,
    generate_month_schedule,
    save_generated_schedule,
    submit_for_approval,
    validate_schedule,
)
from shiftgen.tasks import generate_and_save

router = APIRouter(prefix="/schedules", tags=["schedules"])


class SaveRequest(BaseModel):
    created_by: Optional[int] = None


class ShiftCell(BaseModel):
    employee_id: int
    day: date
    shift_type_id: int


class ValidateRequest(BaseModel):
    items: list[ShiftCell]


def _check_month(month: str) -> None:
    try:
        parse_month(month)
    except InvalidMonth as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def _result_payload(month: str, result: GenerationResult) -> dict:
    return {
        "ok": True,
        "month": month,
        "schedule_id": result.schedule_id,
        "assignments": [asdict(a) for a in result.assignments],
        "warnings": result.warnings,
        "stats": asdict(result.stats),
    }


@router.post("/generate")
def generate(
    month: str = Query(..., description="YYYY-MM"),
    session: Session = Depends(get_session),
) -> dict:
    _check_month(month)
    return _result_payload(month, generate_month_schedule(session, month))


@router.post("/generate/save")
def generate_and_store(
    payload: SaveRequest,
    month: str = Query(..., description="YYYY-MM"),
    session: Session = Depends(get_session),
) -> dict:
    _check_month(month)
    return _result_payload(month, save_generated_schedule(session, month, payload.created_by))


@router.post("/generate/async", status_code=202)
def enqueue_generation(
    payload: SaveRequest,
    month: str = Query(..., description="YYYY-MM"),
) -> dict:
    _check_month(month)
    result = generate_and_save.delay(month, payload.created_by)
    return {"task_id": result.id}


@router.get("")
def list_schedules(
    month: Optional[str] = Query(None, description="YYYY-MM"),
    session: Session = Depends(get_session),
) -> list[WorkSchedule]:
    q = select(WorkSchedule)
    if month:
        _check_month(month)
        year, mon = parse_month(month)
        q = q.where(WorkSchedule.year == year, WorkSchedule.month == mon)
    return session.exec(q.order_by(WorkSchedule.year, WorkSchedule.month, WorkSchedule.id)).all()


@router.get("/{schedule_id}")
def get_schedule(schedule_id: int, session: Session = Depends(get_session)) -> dict:
    schedule = session.get(WorkSchedule, schedule_id)
    if not schedule:
        raise HTTPException(status_code=404, detail="schedule not found")
    items = session.exec(
        select(Assignment)
        .where(Assignment.work_schedule_id == schedule_id)
        .order_by(Assignment.day, Assignment.employee_id)
    ).all()
    return {
        "schedule": schedule.model_dump(),
        "month": schedule.month_year,
        "assignments": [a.model_dump() for a in items],
    }


@router.get("/{schedule_id}/validate")
def validate_stored(schedule_id: int, session: Session = Depends(get_session)) -> dict:
    try:
        return asdict(validate_schedule(session, schedule_id))
    except ScheduleNotFound:
        raise HTTPException(status_code=404, detail="schedule not found")


@router.post("/validate")
def validate_cells(payload: ValidateRequest, session: Session = Depends(get_session)) -> dict:
    # ad hoc check of an edited grid before it is saved anywhere
    shift_ids = {c.shift_type_id for c in payload.items}
    shift_map = {
        s.id: s
        for s in session.exec(select(ShiftType).where(ShiftType.id.in_(list(shift_ids)))).all()  # type: ignore[attr-defined]
    }
    unknown = sorted(shift_ids - shift_map.keys())
    if unknown:
        raise HTTPException(status_code=400, detail=f"unknown shift_type_id: {unknown}")

    records = [
        ShiftRecord(
            employee_id=c.employee_id,
            day=c.day,
            start_time=shift_map[c.shift_type_id].start_time,
            end_time=shift_map[c.shift_type_id].end_time,
            duration_hours=shift_map[c.shift_type_id].duration_hours,
            is_night_shift=shift_map[c.shift_type_id].is_night_shift,
        )
        for c in payload.items
    ]
    return asdict(validate(group_by_employee(records)))


@router.post("/{schedule_id}/submit")
def submit(schedule_id: int, session: Session = Depends(get_session)) -> dict:
    try:
        report = submit_for_approval(session, schedule_id)
    except ScheduleNotFound:
        raise HTTPException(status_code=404, detail="schedule not found")
    except ScheduleNotDraft as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except CriticalViolations as exc:
        raise HTTPException(
            status_code=400,
            detail=jsonable_encoder(
                {
                    "message": "cannot submit a schedule with critical labor law violations",
                    "critical_violations": [asdict(v) for v in exc.report.critical_violations],
                }
            ),
        )
    return {"ok": True, "status": "PENDING_APPROVAL", "warnings": [asdict(w) for w in report.warnings]}
