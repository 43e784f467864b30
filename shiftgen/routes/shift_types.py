from __future__ import annotations

from datetime import time

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session, select

from shiftgen.db import get_session
from shiftgen.models import Assignment, ShiftType

router = APIRouter(prefix="/shift-types", tags=["shift-types"])


class ShiftTypeCreate(BaseModel):
    name: str
    start_time: time
    end_time: time
    duration_hours: float = Field(gt=0, le=24)
    is_night_shift: bool = False
    display_order: int = 0


class ShiftTypeUpdate(BaseModel):
    start_time: time | None = None
    end_time: time | None = None
    duration_hours: float | None = Field(default=None, gt=0, le=24)
    is_night_shift: bool | None = None
    display_order: int | None = None


@router.get("")
def list_shift_types(session: Session = Depends(get_session)) -> list[ShiftType]:
    return session.exec(select(ShiftType).order_by(ShiftType.display_order, ShiftType.id)).all()


@router.post("", status_code=201)
def create_shift_type(payload: ShiftTypeCreate, session: Session = Depends(get_session)) -> ShiftType:
    # the generator matches on the exact name, so only trim surrounding blanks
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="name must not be empty")
    exists = session.exec(select(ShiftType).where(ShiftType.name == name)).first()
    if exists:
        raise HTTPException(status_code=409, detail="name already exists")
    s = ShiftType(**payload.model_dump(exclude={"name"}), name=name)
    session.add(s)
    session.commit()
    session.refresh(s)
    return s


@router.patch("/{shift_type_id}")
def update_shift_type(
    shift_type_id: int, payload: ShiftTypeUpdate, session: Session = Depends(get_session)
) -> ShiftType:
    s = session.get(ShiftType, shift_type_id)
    if not s:
        raise HTTPException(status_code=404, detail="shift type not found")
    data = payload.model_dump(exclude_unset=True)
    for k, v in data.items():
        setattr(s, k, v)
    session.add(s)
    session.commit()
    session.refresh(s)
    return s


@router.delete("/{shift_type_id}", status_code=204)
def delete_shift_type(shift_type_id: int, session: Session = Depends(get_session)) -> None:
    s = session.get(ShiftType, shift_type_id)
    if not s:
        return
    if session.exec(select(Assignment).where(Assignment.shift_type_id == shift_type_id)).first():
        raise HTTPException(status_code=409, detail="shift type is used by stored assignments")
    session.delete(s)
    session.commit()
