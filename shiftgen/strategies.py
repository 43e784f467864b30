from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional

from shiftgen.dates import is_weekend, rest_hours, shift_window
from shiftgen.loader import Catalog, CatalogEntryMissing
from shiftgen.models import Employee, ShiftPatternCategory, ShiftType

logger = logging.getLogger(__name__)


# Catalog names the generator depends on. Renaming a shift type in the
# catalog takes it out of generation.
DAY_12H_SHIFT = "Zi 07-19"
NIGHT_12H_SHIFT = "Noapte 19-07"
FIXED_8H_SHIFT = "Zi 07:30-15:30"
CONTROL_ROTATION: tuple[str, ...] = ("Zi 07:30-15:30", "Zi 08-16", "Zi 09-17", "Zi 13-21")
DISPATCH_POSITION = "Dispecerat"
CONTROL_POSITION = "Control"


class ShiftClass(str, Enum):
    DAY_12 = "DAY_12"
    NIGHT_12 = "NIGHT_12"
    DAY_8 = "DAY_8"


# minimum rest (hours) before the next 12h shift, keyed by the previous shift
REST_AFTER: dict[ShiftClass, float] = {
    ShiftClass.DAY_12: 24,
    ShiftClass.NIGHT_12: 48,
}


@dataclass
class GeneratedAssignment:
    employee_id: int
    day: date
    shift_type_id: int
    work_position_id: Optional[int]
    note: str


@dataclass
class EmployeeScheduleState:
    last_shift_date: Optional[date] = None
    last_shift_class: Optional[ShiftClass] = None
    last_shift_end: Optional[datetime] = None
    hours_this_month: float = 0
    worked_days: list[date] = field(default_factory=list)

    def record(self, day: date, shift_type: ShiftType, shift_class: ShiftClass) -> None:
        self.hours_this_month += shift_type.duration_hours
        self.worked_days.append(day)
        self.last_shift_date = day
        self.last_shift_class = shift_class
        self.last_shift_end = shift_window(day, shift_type.start_time, shift_type.end_time)[1]


@dataclass
class GenerationContext:
    """Everything a strategy reads, plus the per-employee state it mutates."""

    days: list[date]
    monthly_hours_limit: float
    catalog: Catalog
    leave_days: dict[int, set[date]]
    states: dict[int, EmployeeScheduleState]
    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.debug("generation warning: %s", message)
        self.warnings.append(message)

    def on_leave(self, employee_id: int, day: date) -> bool:
        return day in self.leave_days.get(employee_id, ())

    def within_budget(self, employee_id: int, hours: float) -> bool:
        return self.states[employee_id].hours_this_month + hours <= self.monthly_hours_limit

    def assign(
        self,
        employee_id: int,
        day: date,
        shift_type: ShiftType,
        shift_class: ShiftClass,
        work_position_id: Optional[int],
    ) -> GeneratedAssignment:
        self.states[employee_id].record(day, shift_type, shift_class)
        return GeneratedAssignment(
            employee_id=employee_id,
            day=day,
            shift_type_id=shift_type.id,  # type: ignore[arg-type]
            work_position_id=work_position_id,
            note=f"{shift_type.start_time:%H:%M}-{shift_type.end_time:%H:%M}",
        )


class CategoryStrategy:
    category: ShiftPatternCategory
    label: str

    def generate(self, employees: list[Employee], ctx: GenerationContext) -> list[GeneratedAssignment]:
        raise NotImplementedError

    def position_id(self, ctx: GenerationContext, name: str) -> Optional[int]:
        try:
            return ctx.catalog.work_position(name).id
        except CatalogEntryMissing as exc:
            ctx.warn(f"{self.label}: {exc}; assignments are saved without a work position")
            return None


class Rotating12HourStrategy(CategoryStrategy):
    """Day -> night -> rest -> rest, with two people on each shift every day.

    Employees are split into four cohorts of two, each starting the cycle one
    day later than the previous cohort, so eight people cover the month.
    Slots the cycle leaves empty (leave, exhausted budget, small roster) are
    backfilled from anyone rested enough.
    """

    category = ShiftPatternCategory.ROTATING_12H
    label = "Dispatch 12h"
    cycle_length = 4
    crew_size = 2
    min_roster = 8

    def generate(self, employees: list[Employee], ctx: GenerationContext) -> list[GeneratedAssignment]:
        out: list[GeneratedAssignment] = []
        if len(employees) < self.min_roster:
            ctx.warn(
                f"{self.label}: only {len(employees)} employees, at least {self.min_roster} are needed "
                f"for {self.crew_size} on day and {self.crew_size} on night with a {self.cycle_length}-day cycle"
            )

        try:
            day_shift = ctx.catalog.shift_type(DAY_12H_SHIFT)
            night_shift = ctx.catalog.shift_type(NIGHT_12H_SHIFT)
        except CatalogEntryMissing as exc:
            ctx.warn(f"{self.label}: {exc}; no shifts generated for this category")
            return out
        position_id = self.position_id(ctx, DISPATCH_POSITION)

        offsets = {e.id: (index // 2) % self.cycle_length for index, e in enumerate(employees)}

        for day in ctx.days:
            day_crew: list[int] = []
            night_crew: list[int] = []

            for e in employees:
                if ctx.on_leave(e.id, day) or not ctx.within_budget(e.id, day_shift.duration_hours):
                    continue
                phase = (offsets[e.id] + day.day - 1) % self.cycle_length
                if phase == 0 and len(day_crew) < self.crew_size:
                    out.append(ctx.assign(e.id, day, day_shift, ShiftClass.DAY_12, position_id))
                    day_crew.append(e.id)
                elif phase == 1 and len(night_crew) < self.crew_size:
                    out.append(ctx.assign(e.id, day, night_shift, ShiftClass.NIGHT_12, position_id))
                    night_crew.append(e.id)
                # phases 2 and 3 are rest days

            for shift, shift_class, crew in (
                (day_shift, ShiftClass.DAY_12, day_crew),
                (night_shift, ShiftClass.NIGHT_12, night_crew),
            ):
                for e in employees:
                    if len(crew) >= self.crew_size:
                        break
                    if e.id in day_crew or e.id in night_crew:
                        continue
                    if not self._can_backfill(e.id, day, shift, ctx):
                        continue
                    out.append(ctx.assign(e.id, day, shift, shift_class, position_id))
                    crew.append(e.id)

            if len(day_crew) < self.crew_size:
                ctx.warn(f"{day.isoformat()}: only {len(day_crew)}/{self.crew_size} employees on the dispatch day shift")
            if len(night_crew) < self.crew_size:
                ctx.warn(
                    f"{day.isoformat()}: only {len(night_crew)}/{self.crew_size} employees on the dispatch night shift"
                )

        return out

    def _can_backfill(self, employee_id: int, day: date, shift: ShiftType, ctx: GenerationContext) -> bool:
        if ctx.on_leave(employee_id, day):
            return False
        if not ctx.within_budget(employee_id, shift.duration_hours):
            return False
        state = ctx.states[employee_id]
        if state.last_shift_end is None or state.last_shift_class is None:
            return True
        required = REST_AFTER.get(state.last_shift_class, 0)
        start, _ = shift_window(day, shift.start_time, shift.end_time)
        return rest_hours(state.last_shift_end, start) >= required


class Fixed8HourStrategy(CategoryStrategy):
    category = ShiftPatternCategory.FIXED_8H
    label = "Dispatch 8h"

    def generate(self, employees: list[Employee], ctx: GenerationContext) -> list[GeneratedAssignment]:
        out: list[GeneratedAssignment] = []
        try:
            shift = ctx.catalog.shift_type(FIXED_8H_SHIFT)
        except CatalogEntryMissing as exc:
            ctx.warn(f"{self.label}: {exc}; no shifts generated for this category")
            return out
        position_id = self.position_id(ctx, DISPATCH_POSITION)

        for day in ctx.days:
            if is_weekend(day):
                continue
            for e in employees:
                if ctx.on_leave(e.id, day):
                    continue
                if not ctx.within_budget(e.id, shift.duration_hours):
                    continue
                out.append(ctx.assign(e.id, day, shift, ShiftClass.DAY_8, position_id))
        return out


class WeeklyRotating8HourStrategy(CategoryStrategy):
    """Control staff work every day; everyone moves to the next shift each Monday."""

    category = ShiftPatternCategory.ROTATING_8H
    label = "Control"

    def generate(self, employees: list[Employee], ctx: GenerationContext) -> list[GeneratedAssignment]:
        out: list[GeneratedAssignment] = []
        position_id = self.position_id(ctx, CONTROL_POSITION)
        rotation = CONTROL_ROTATION
        slot = {e.id: index % len(rotation) for index, e in enumerate(employees)}
        missing: set[str] = set()

        for day in ctx.days:
            if day.weekday() == 0 and day.day > 1:
                for emp_id in slot:
                    slot[emp_id] = (slot[emp_id] + 1) % len(rotation)

            for e in employees:
                if ctx.on_leave(e.id, day):
                    continue
                name = rotation[slot[e.id]]
                try:
                    shift = ctx.catalog.shift_type(name)
                except CatalogEntryMissing as exc:
                    if name not in missing:
                        missing.add(name)
                        ctx.warn(f"{self.label}: {exc}; employees rotated onto it are left unscheduled")
                    continue
                if not ctx.within_budget(e.id, shift.duration_hours):
                    continue
                out.append(ctx.assign(e.id, day, shift, ShiftClass.DAY_8, position_id))
        return out


STRATEGIES: dict[ShiftPatternCategory, type[CategoryStrategy]] = {
    ShiftPatternCategory.ROTATING_12H: Rotating12HourStrategy,
    ShiftPatternCategory.FIXED_8H: Fixed8HourStrategy,
    ShiftPatternCategory.ROTATING_8H: WeeklyRotating8HourStrategy,
}
