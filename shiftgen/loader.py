from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from sqlmodel import Session, select

from shiftgen.dates import is_weekend, iter_days, month_range
from shiftgen.models import Employee, LeaveRequest, LeaveStatus, ShiftType, WorkPosition


class CatalogEntryMissing(LookupError):
    def __init__(self, kind: str, name: str):
        super().__init__(f"{kind} '{name}' not found in catalog")
        self.kind = kind
        self.name = name


class Catalog:
    """Shift-type and work-position lookup by literal name.

    The generator refers to catalog entries by their display name
    ("Zi 07-19", "Dispecerat", ...). A missing name raises
    :class:`CatalogEntryMissing`; callers decide whether that aborts a
    category or just one slot.
    """

    def __init__(self, shift_types: Iterable[ShiftType], work_positions: Iterable[WorkPosition]):
        self._shift_types = {s.name: s for s in shift_types}
        self._positions = {p.name: p for p in work_positions}

    def shift_type(self, name: str) -> ShiftType:
        try:
            return self._shift_types[name]
        except KeyError:
            raise CatalogEntryMissing("shift type", name) from None

    def work_position(self, name: str) -> WorkPosition:
        try:
            return self._positions[name]
        except KeyError:
            raise CatalogEntryMissing("work position", name) from None


@dataclass
class RosterSnapshot:
    employees: list[Employee]
    shift_types: list[ShiftType]
    work_positions: list[WorkPosition]
    leaves: list[LeaveRequest] = field(default_factory=list)

    def catalog(self) -> Catalog:
        return Catalog(self.shift_types, self.work_positions)


def load_snapshot(session: Session, month: str) -> RosterSnapshot:
    start, end = month_range(month)
    employees = session.exec(select(Employee).where(Employee.active == True).order_by(Employee.id)).all()  # noqa: E712
    shift_types = session.exec(select(ShiftType).order_by(ShiftType.display_order, ShiftType.id)).all()
    positions = session.exec(
        select(WorkPosition)
        .where(WorkPosition.active == True)  # noqa: E712
        .order_by(WorkPosition.display_order, WorkPosition.id)
    ).all()
    leaves = session.exec(
        select(LeaveRequest).where(
            LeaveRequest.status == LeaveStatus.APPROVED,
            LeaveRequest.start_date <= end,
            LeaveRequest.end_date >= start,
        )
    ).all()
    return RosterSnapshot(
        employees=list(employees),
        shift_types=list(shift_types),
        work_positions=list(positions),
        leaves=list(leaves),
    )


def build_leave_days(leaves: Iterable[LeaveRequest]) -> dict[int, set[date]]:
    # weekends are never counted as leave days, so weekend work stays schedulable
    leave_days: dict[int, set[date]] = {}
    for leave in leaves:
        if leave.status != LeaveStatus.APPROVED:
            continue
        days = leave_days.setdefault(leave.employee_id, set())
        for d in iter_days(leave.start_date, leave.end_date):
            if not is_weekend(d):
                days.add(d)
    return leave_days
