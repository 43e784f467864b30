"""Labor-law compliance checks for monthly schedules.

Works on plain :class:`ShiftRecord` rows grouped by employee, so the same
rules apply to a freshly generated month and to a schedule someone edited by
hand. Every rule breach becomes a record in the report; nothing here raises.

12-hour pattern (detected from the first shift's duration):
- rest after a day shift >= 24h, after a night shift >= 48h
- at most 48h per week

8-hour pattern:
- at most 5 worked days and 40h per week (exactly 40h is a warning)
- rest between shifts >= 11h

Both patterns need a gap of at least 35h between two shifts of the same
week; a week with a single shift has no such gap and is flagged.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence

from shiftgen.dates import rest_hours, shift_window, week_number


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"


REST_AFTER_DAY_12H = 24
REST_AFTER_NIGHT_12H = 48
MAX_WEEKLY_HOURS_12H = 48
MAX_WEEKLY_DAYS_8H = 5
MAX_WEEKLY_HOURS_8H = 40
MIN_REST_8H = 11
MIN_WEEKLY_REST = 35

LEGAL_REST_NIGHT = (
    "Labour Code Art. 111: employees working night shifts are entitled to at least 48 hours of rest between shifts."
)
LEGAL_REST_DAY = (
    "Labour Code Art. 110: the normal working day is at most 8 hours; "
    "12-hour shifts require at least 24 hours of rest."
)
LEGAL_WEEKLY_HOURS = (
    "Labour Code Art. 112: working time may not exceed 48 hours per week, overtime included."
)
LEGAL_WORK_DAYS = (
    "Labour Code Art. 110 and Art. 113: the working week has at most 5 working days; "
    "employees are entitled to at least 2 days of weekly rest."
)
LEGAL_WEEKLY_HOURS_8H = "Labour Code Art. 110: normal working time is 8 hours per day and 40 hours per week."
LEGAL_REST_8H = (
    "Labour Code Art. 113: daily rest is at least 12 consecutive hours; "
    "in shift work the rest between shifts may not be less than 11 hours."
)
LEGAL_WEEKLY_REST = "Labour Code Art. 137: weekly rest is granted as 48 consecutive hours, at least 35 in shift work."


@dataclass(frozen=True)
class ShiftRecord:
    employee_id: int
    day: date
    start_time: time
    end_time: time
    duration_hours: float
    is_night_shift: bool = False

    def window(self) -> tuple[datetime, datetime]:
        return shift_window(self.day, self.start_time, self.end_time)


@dataclass
class ViolationRecord:
    type: str
    severity: Severity
    message: str
    employee_id: int
    legal_reference: Optional[str] = None
    dates: list[date] = field(default_factory=list)
    week_number: Optional[int] = None
    shift_kind: Optional[str] = None
    required_rest: Optional[float] = None
    actual_rest: Optional[float] = None
    max_rest: Optional[float] = None
    hours: Optional[float] = None
    days: Optional[int] = None


class WarningRecord(ViolationRecord):
    pass


@dataclass
class ValidationReport:
    is_valid: bool
    violations: list[ViolationRecord]
    warnings: list[WarningRecord]
    critical_violations: list[ViolationRecord]
    validated_at: datetime


def group_by_employee(records: Iterable[ShiftRecord]) -> dict[int, list[ShiftRecord]]:
    grouped: dict[int, list[ShiftRecord]] = {}
    for r in records:
        grouped.setdefault(r.employee_id, []).append(r)
    return grouped


def validate(assignments_by_employee: Mapping[int, Sequence[ShiftRecord]]) -> ValidationReport:
    violations: list[ViolationRecord] = []
    warnings: list[WarningRecord] = []
    for employee_id, records in assignments_by_employee.items():
        v, w = validate_employee(employee_id, records)
        violations.extend(v)
        warnings.extend(w)

    critical = [v for v in violations if v.severity == Severity.CRITICAL]
    return ValidationReport(
        is_valid=not critical,
        violations=violations,
        warnings=warnings,
        critical_violations=critical,
        validated_at=datetime.now(timezone.utc),
    )


def validate_employee(
    employee_id: int, records: Sequence[ShiftRecord]
) -> tuple[list[ViolationRecord], list[WarningRecord]]:
    ordered = sorted(records, key=lambda r: (r.day, r.start_time))
    if not ordered:
        return [], []

    # rest between each shift and the one after it
    rests = [rest_hours(cur.window()[1], nxt.window()[0]) for cur, nxt in zip(ordered, ordered[1:])]
    weeks: OrderedDict[tuple[int, int], list[int]] = OrderedDict()
    for idx, r in enumerate(ordered):
        weeks.setdefault((r.day.year, week_number(r.day)), []).append(idx)

    if ordered[0].duration_hours == 12:
        violations = _check_12h(employee_id, ordered, rests, weeks)
        warnings: list[WarningRecord] = []
    else:
        violations, warnings = _check_8h(employee_id, ordered, rests, weeks)

    violations.extend(_check_weekly_rest(employee_id, ordered, rests, weeks))
    return violations, warnings


def _check_12h(
    employee_id: int,
    ordered: list[ShiftRecord],
    rests: list[float],
    weeks: Mapping[tuple[int, int], list[int]],
) -> list[ViolationRecord]:
    violations: list[ViolationRecord] = []
    for idx, rest in enumerate(rests):
        current, nxt = ordered[idx], ordered[idx + 1]
        night = current.is_night_shift
        required = REST_AFTER_NIGHT_12H if night else REST_AFTER_DAY_12H
        if rest < required:
            kind = "night" if night else "day"
            violations.append(
                ViolationRecord(
                    type="INSUFFICIENT_REST_12H",
                    severity=Severity.CRITICAL,
                    message=f"12h shifts: insufficient rest after {kind} shift ({rest:.1f}h < {required}h required)",
                    employee_id=employee_id,
                    legal_reference=LEGAL_REST_NIGHT if night else LEGAL_REST_DAY,
                    dates=[current.day, nxt.day],
                    shift_kind=kind,
                    required_rest=required,
                    actual_rest=rest,
                )
            )

    for (_, week), indexes in weeks.items():
        hours = sum(ordered[i].duration_hours for i in indexes)
        if hours > MAX_WEEKLY_HOURS_12H:
            violations.append(
                ViolationRecord(
                    type="EXCESSIVE_WEEKLY_HOURS_12H",
                    severity=Severity.CRITICAL,
                    message=f"Week {week}: {hours:g}h exceeds the {MAX_WEEKLY_HOURS_12H}h maximum (12h shifts)",
                    employee_id=employee_id,
                    legal_reference=LEGAL_WEEKLY_HOURS,
                    week_number=week,
                    hours=hours,
                )
            )
    return violations


def _check_8h(
    employee_id: int,
    ordered: list[ShiftRecord],
    rests: list[float],
    weeks: Mapping[tuple[int, int], list[int]],
) -> tuple[list[ViolationRecord], list[WarningRecord]]:
    violations: list[ViolationRecord] = []
    warnings: list[WarningRecord] = []

    for (_, week), indexes in weeks.items():
        days = len({ordered[i].day for i in indexes})
        hours = sum(ordered[i].duration_hours for i in indexes)
        if days > MAX_WEEKLY_DAYS_8H:
            violations.append(
                ViolationRecord(
                    type="EXCESSIVE_WORK_DAYS",
                    severity=Severity.CRITICAL,
                    message=f"Week {week}: {days} working days exceeds the {MAX_WEEKLY_DAYS_8H}-day maximum (8h shifts)",
                    employee_id=employee_id,
                    legal_reference=LEGAL_WORK_DAYS,
                    week_number=week,
                    days=days,
                )
            )
        if hours > MAX_WEEKLY_HOURS_8H:
            violations.append(
                ViolationRecord(
                    type="EXCESSIVE_WEEKLY_HOURS_8H",
                    severity=Severity.CRITICAL,
                    message=f"Week {week}: {hours:g}h exceeds the {MAX_WEEKLY_HOURS_8H}h maximum (8h shifts)",
                    employee_id=employee_id,
                    legal_reference=LEGAL_WEEKLY_HOURS_8H,
                    week_number=week,
                    hours=hours,
                )
            )
        elif hours == MAX_WEEKLY_HOURS_8H:
            warnings.append(
                WarningRecord(
                    type="AT_WEEKLY_LIMIT",
                    severity=Severity.WARNING,
                    message=f"Week {week}: {hours:g}h reaches the {MAX_WEEKLY_HOURS_8H}h limit",
                    employee_id=employee_id,
                    week_number=week,
                    hours=hours,
                )
            )

    for idx, rest in enumerate(rests):
        if rest < MIN_REST_8H:
            violations.append(
                ViolationRecord(
                    type="INSUFFICIENT_REST_8H",
                    severity=Severity.CRITICAL,
                    message=f"8h shifts: insufficient rest between shifts ({rest:.1f}h < {MIN_REST_8H}h required)",
                    employee_id=employee_id,
                    legal_reference=LEGAL_REST_8H,
                    dates=[ordered[idx].day, ordered[idx + 1].day],
                    required_rest=MIN_REST_8H,
                    actual_rest=rest,
                )
            )
    return violations, warnings


def _check_weekly_rest(
    employee_id: int,
    ordered: list[ShiftRecord],
    rests: list[float],
    weeks: Mapping[tuple[int, int], list[int]],
) -> list[ViolationRecord]:
    # only gaps between two shifts of the same week count; a single-shift week has none
    violations: list[ViolationRecord] = []
    for (_, week), indexes in weeks.items():
        longest = max((rests[i] for i in indexes[:-1]), default=0)
        if longest < MIN_WEEKLY_REST:
            violations.append(
                ViolationRecord(
                    type="INSUFFICIENT_WEEKLY_REST",
                    severity=Severity.CRITICAL,
                    message=f"Week {week}: no {MIN_WEEKLY_REST}h consecutive rest period (longest {longest:.1f}h)",
                    employee_id=employee_id,
                    legal_reference=LEGAL_WEEKLY_REST,
                    dates=[ordered[i].day for i in indexes],
                    week_number=week,
                    max_rest=longest,
                )
            )
    return violations
