from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlmodel import Session, select

from shiftgen.db import get_session
from shiftgen.models import Assignment, ShiftType, WorkSchedule

router = APIRouter(prefix="/assignments", tags=["assignments"])


class AssignmentDTO(BaseModel):
    employee_id: int
    day: date
    shift_type_id: int
    shift_name: str
    duration_hours: float
    work_position_id: int | None = None
    note: str | None = None


class AssignmentUpsert(BaseModel):
    work_schedule_id: int
    employee_id: int
    day: date
    shift_type_id: int | None = None
    work_position_id: int | None = None
    note: str | None = None


@router.get("")
def list_assignments(
    schedule_id: int = Query(..., description="work schedule id"),
    session: Session = Depends(get_session),
) -> list[AssignmentDTO]:
    rows = session.exec(
        select(Assignment, ShiftType)
        .where(Assignment.work_schedule_id == schedule_id, Assignment.shift_type_id == ShiftType.id)
        .order_by(Assignment.day, Assignment.employee_id)
    ).all()
    return [
        AssignmentDTO(
            employee_id=a.employee_id,
            day=a.day,
            shift_type_id=a.shift_type_id,
            shift_name=s.name,
            duration_hours=s.duration_hours,
            work_position_id=a.work_position_id,
            note=a.note,
        )
        for a, s in rows
    ]


@router.put("")
def upsert_assignment(payload: AssignmentUpsert, session: Session = Depends(get_session)) -> dict:
    schedule = session.get(WorkSchedule, payload.work_schedule_id)
    if not schedule:
        raise HTTPException(status_code=404, detail="schedule not found")
    if (payload.day.year, payload.day.month) != (schedule.year, schedule.month):
        raise HTTPException(status_code=400, detail=f"day is outside schedule month {schedule.month_year}")

    existing = session.exec(
        select(Assignment).where(
            Assignment.work_schedule_id == payload.work_schedule_id,
            Assignment.employee_id == payload.employee_id,
            Assignment.day == payload.day,
        )
    ).first()

    # shift_type_id null -> clear the cell
    if payload.shift_type_id is None:
        if existing:
            session.delete(existing)
            session.commit()
        return {"ok": True, "deleted": True}

    if not session.get(ShiftType, payload.shift_type_id):
        raise HTTPException(status_code=400, detail="shift_type_id does not exist")

    if existing:
        existing.shift_type_id = payload.shift_type_id
        existing.work_position_id = payload.work_position_id
        existing.note = payload.note
        session.add(existing)
    else:
        session.add(
            Assignment(
                work_schedule_id=payload.work_schedule_id,
                employee_id=payload.employee_id,
                day=payload.day,
                shift_type_id=payload.shift_type_id,
                work_position_id=payload.work_position_id,
                note=payload.note,
            )
        )
    session.commit()
    return {"ok": True}
