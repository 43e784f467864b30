from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session, select

from shiftgen.db import get_session
from shiftgen.models import WorkPosition

router = APIRouter(prefix="/work-positions", tags=["work-positions"])


class WorkPositionCreate(BaseModel):
    name: str
    short_name: str | None = None
    display_order: int = 0


@router.get("")
def list_work_positions(session: Session = Depends(get_session)) -> list[WorkPosition]:
    return session.exec(
        select(WorkPosition).where(WorkPosition.active == True).order_by(WorkPosition.display_order)  # noqa: E712
    ).all()


@router.post("", status_code=201)
def create_work_position(payload: WorkPositionCreate, session: Session = Depends(get_session)) -> WorkPosition:
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="name must not be empty")
    if session.exec(select(WorkPosition).where(WorkPosition.name == name)).first():
        raise HTTPException(status_code=409, detail="name already exists")
    p = WorkPosition(name=name, short_name=payload.short_name, display_order=payload.display_order)
    session.add(p)
    session.commit()
    session.refresh(p)
    return p


@router.delete("/{position_id}", status_code=204)
def deactivate_work_position(position_id: int, session: Session = Depends(get_session)) -> None:
    # soft delete: stored assignments keep pointing at the row
    p = session.get(WorkPosition, position_id)
    if not p:
        return
    p.active = False
    session.add(p)
    session.commit()
