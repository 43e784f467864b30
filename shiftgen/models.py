from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class ShiftPatternCategory(str, Enum):
    ROTATING_12H = "ROTATING_12H"
    FIXED_8H = "FIXED_8H"
    ROTATING_8H = "ROTATING_8H"


class LeaveStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ScheduleStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Employee(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    active: bool = Field(default=True, index=True)
    shift_pattern_category: Optional[ShiftPatternCategory] = Field(
        default=None, index=True, description="Scheduling bucket; employees without one are never scheduled"
    )
    department: Optional[str] = None


class ShiftType(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, description="Lookup key used by the generator, e.g. 'Zi 07-19'")
    start_time: time
    end_time: time
    duration_hours: float
    is_night_shift: bool = False
    display_order: int = 0


class WorkPosition(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, description="Lookup key, e.g. 'Dispecerat' or 'Control'")
    short_name: Optional[str] = None
    display_order: int = 0
    active: bool = True


class LeaveRequest(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    employee_id: int = Field(index=True, foreign_key="employee.id")
    start_date: date
    end_date: date = Field(description="Inclusive")
    status: LeaveStatus = Field(default=LeaveStatus.PENDING, index=True)


class WorkSchedule(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    month: int = Field(index=True)
    year: int = Field(index=True)
    shift_pattern: str = "MIXED"
    status: ScheduleStatus = Field(default=ScheduleStatus.DRAFT)
    created_by: Optional[int] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None

    @property
    def month_year(self) -> str:
        return f"{self.year}-{self.month:02d}"


class Assignment(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("work_schedule_id", "employee_id", "day", name="uq_assignment_schedule_employee_day"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    work_schedule_id: Optional[int] = Field(default=None, index=True, foreign_key="workschedule.id")
    employee_id: int = Field(index=True, foreign_key="employee.id")
    day: date = Field(index=True)
    shift_type_id: int = Field(foreign_key="shifttype.id")
    work_position_id: Optional[int] = Field(default=None, foreign_key="workposition.id")
    note: Optional[str] = None
