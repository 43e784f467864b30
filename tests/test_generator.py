from collections import Counter
from datetime import date, timedelta

import pytest

from shiftgen.dates import count_working_days, month_range, shift_window
from shiftgen.labor_law import ShiftRecord, group_by_employee, validate
from shiftgen.models import ShiftPatternCategory
from shiftgen.schedule_service import generate_from_snapshot

MONTH = "2026-09"  # 30 days, 22 working days -> 176h budget
BUDGET = 22 * 8


def _by_day(assignments, shift_type_id):
    return Counter(a.day for a in assignments if a.shift_type_id == shift_type_id)


def _records(assignments, snapshot):
    types = {s.id: s for s in snapshot.shift_types}
    return [
        ShiftRecord(
            employee_id=a.employee_id,
            day=a.day,
            start_time=types[a.shift_type_id].start_time,
            end_time=types[a.shift_type_id].end_time,
            duration_hours=types[a.shift_type_id].duration_hours,
            is_night_shift=types[a.shift_type_id].is_night_shift,
        )
        for a in assignments
    ]


def test_rotating_12h_full_roster_covers_until_budget_runs_out(make_employees, make_snapshot, shift_ids):
    employees = make_employees(ShiftPatternCategory.ROTATING_12H, 8)
    result = generate_from_snapshot(make_snapshot(employees), MONTH)

    day_counts = _by_day(result.assignments, shift_ids["Zi 07-19"])
    night_counts = _by_day(result.assignments, shift_ids["Noapte 19-07"])
    for d in range(1, 29):
        assert day_counts[date(2026, 9, d)] == 2
        assert night_counts[date(2026, 9, d)] == 2

    # every cohort has used 14 x 12h = 168h by the 28th; a 15th shift would break the 176h budget
    assert day_counts[date(2026, 9, 29)] == 0
    assert night_counts[date(2026, 9, 30)] == 0
    assert len(result.warnings) == 4
    assert all(w.startswith(("2026-09-29", "2026-09-30")) for w in result.warnings)
    assert result.stats.total_assignments == 8 * 14
    assert result.stats.users_scheduled == 8


def test_rotating_12h_primary_cycle_respects_rest(make_employees, make_snapshot):
    snapshot = make_snapshot(make_employees(ShiftPatternCategory.ROTATING_12H, 8))
    result = generate_from_snapshot(snapshot, MONTH)

    records = _records(result.assignments, snapshot)
    for employee_records in group_by_employee(records).values():
        ordered = sorted(employee_records, key=lambda r: r.day)
        for cur, nxt in zip(ordered, ordered[1:]):
            rest = (nxt.window()[0] - cur.window()[1]).total_seconds() / 3600
            assert rest >= (48 if cur.is_night_shift else 24)

    # weeks cut by the month boundary can lack a 35h gap, rest and weekly hours always hold
    report = validate(group_by_employee(records))
    assert {v.type for v in report.violations} <= {"INSUFFICIENT_WEEKLY_REST"}


def test_rotating_12h_cycle_is_day_night_rest_rest(make_employees, make_snapshot, shift_ids):
    employees = make_employees(ShiftPatternCategory.ROTATING_12H, 8)
    result = generate_from_snapshot(make_snapshot(employees), MONTH)

    first = sorted((a for a in result.assignments if a.employee_id == employees[0].id), key=lambda a: a.day)
    assert [(a.day.day, a.shift_type_id) for a in first[:4]] == [
        (1, shift_ids["Zi 07-19"]),
        (2, shift_ids["Noapte 19-07"]),
        (5, shift_ids["Zi 07-19"]),
        (6, shift_ids["Noapte 19-07"]),
    ]
    # third pair of employees starts the cycle two days later
    third = sorted((a for a in result.assignments if a.employee_id == employees[4].id), key=lambda a: a.day)
    assert third[0].day == date(2026, 9, 3)
    assert third[0].shift_type_id == shift_ids["Zi 07-19"]


def test_rotating_12h_small_roster_warns_but_generates(make_employees, make_snapshot):
    result = generate_from_snapshot(make_snapshot(make_employees(ShiftPatternCategory.ROTATING_12H, 3)), MONTH)
    assert "only 3 employees" in result.warnings[0]
    assert result.assignments


def test_rotating_12h_fallback_uses_rested_employee(make_employees, make_snapshot, approved_leave, shift_ids):
    employees = make_employees(ShiftPatternCategory.ROTATING_12H, 9)
    # 2026-09-09 is a day-shift day for the first pair
    leave = approved_leave(employees[0].id, date(2026, 9, 9), date(2026, 9, 9))
    result = generate_from_snapshot(make_snapshot(employees, [leave]), MONTH)

    on_day = {a.employee_id for a in result.assignments if a.day == date(2026, 9, 9) and a.shift_type_id == shift_ids["Zi 07-19"]}
    assert on_day == {employees[1].id, employees[8].id}
    assert not [w for w in result.warnings if w.startswith("2026-09-09")]


def test_rotating_12h_fallback_skips_unrested_employees(make_employees, make_snapshot, approved_leave, shift_ids):
    employees = make_employees(ShiftPatternCategory.ROTATING_12H, 8)
    leave = approved_leave(employees[0].id, date(2026, 9, 9), date(2026, 9, 9))
    result = generate_from_snapshot(make_snapshot(employees, [leave]), MONTH)

    on_day = [a for a in result.assignments if a.day == date(2026, 9, 9) and a.shift_type_id == shift_ids["Zi 07-19"]]
    assert [a.employee_id for a in on_day] == [employees[1].id]
    assert "2026-09-09: only 1/2 employees on the dispatch day shift" in result.warnings


def test_rotating_12h_missing_catalog_entry_skips_category(make_employees, make_snapshot):
    snapshot = make_snapshot(
        make_employees(ShiftPatternCategory.ROTATING_12H, 8) + make_employees(ShiftPatternCategory.FIXED_8H, 1)
    )
    snapshot.shift_types = [s for s in snapshot.shift_types if s.name != "Noapte 19-07"]

    result = generate_from_snapshot(snapshot, MONTH)

    assert any("Noapte 19-07" in w and "Dispatch 12h" in w for w in result.warnings)
    assert result.stats.users_scheduled == 1
    assert result.stats.total_assignments == 22


def test_fixed_8h_works_every_weekday(make_employees, make_snapshot, shift_ids):
    employee = make_employees(ShiftPatternCategory.FIXED_8H, 1)[0]
    result = generate_from_snapshot(make_snapshot([employee]), MONTH)

    days = [a.day for a in result.assignments]
    assert len(days) == 22
    assert all(d.weekday() < 5 for d in days)
    assert {a.shift_type_id for a in result.assignments} == {shift_ids["Zi 07:30-15:30"]}
    assert {a.work_position_id for a in result.assignments} == {1}
    assert result.warnings == []


def test_fixed_8h_leave_over_first_five_weekdays(make_employees, make_snapshot, approved_leave):
    employee = make_employees(ShiftPatternCategory.FIXED_8H, 1)[0]
    # Tue 1st .. Mon 7th: five weekdays, the weekend in between is not leave
    leave = approved_leave(employee.id, date(2026, 9, 1), date(2026, 9, 7))
    result = generate_from_snapshot(make_snapshot([employee], [leave]), MONTH)

    days = sorted(a.day for a in result.assignments)
    for d in (1, 2, 3, 4, 7):
        assert date(2026, 9, d) not in days
    assert days[0] == date(2026, 9, 8)
    assert len(days) == 17


def test_fixed_8h_missing_shift_aborts_category(make_employees, make_snapshot):
    snapshot = make_snapshot(make_employees(ShiftPatternCategory.FIXED_8H, 2))
    snapshot.shift_types = [s for s in snapshot.shift_types if s.name != "Zi 07:30-15:30"]
    result = generate_from_snapshot(snapshot, MONTH)
    assert result.assignments == []
    assert len(result.warnings) == 1
    assert "Dispatch 8h" in result.warnings[0]


def test_control_rotation_advances_each_monday(make_employees, make_snapshot, shift_ids):
    employees = make_employees(ShiftPatternCategory.ROTATING_8H, 4)
    result = generate_from_snapshot(make_snapshot(employees), MONTH)

    def shift_on(emp, d):
        return next(a.shift_type_id for a in result.assignments if a.employee_id == emp.id and a.day == date(2026, 9, d))

    assert shift_on(employees[0], 1) == shift_ids["Zi 07:30-15:30"]
    assert shift_on(employees[0], 6) == shift_ids["Zi 07:30-15:30"]
    assert shift_on(employees[0], 7) == shift_ids["Zi 08-16"]
    assert shift_on(employees[0], 14) == shift_ids["Zi 09-17"]
    assert shift_on(employees[1], 1) == shift_ids["Zi 08-16"]
    assert shift_on(employees[3], 1) == shift_ids["Zi 13-21"]
    assert shift_on(employees[3], 7) == shift_ids["Zi 07:30-15:30"]
    assert {a.work_position_id for a in result.assignments} == {2}


def test_control_works_weekends_until_budget(make_employees, make_snapshot):
    employee = make_employees(ShiftPatternCategory.ROTATING_8H, 1)[0]
    result = generate_from_snapshot(make_snapshot([employee]), MONTH)

    days = sorted(a.day for a in result.assignments)
    assert days == [date(2026, 9, d) for d in range(1, 23)]
    assert any(d.weekday() >= 5 for d in days)


def test_control_missing_rotation_slot_skips_only_that_slot(make_employees, make_snapshot):
    employees = make_employees(ShiftPatternCategory.ROTATING_8H, 4)
    snapshot = make_snapshot(employees)
    snapshot.shift_types = [s for s in snapshot.shift_types if s.name != "Zi 13-21"]

    result = generate_from_snapshot(snapshot, MONTH)

    assert len([w for w in result.warnings if "Zi 13-21" in w]) == 1
    fourth = {a.day for a in result.assignments if a.employee_id == employees[3].id}
    assert not any(date(2026, 9, d) in fourth for d in range(1, 7))
    assert date(2026, 9, 7) in fourth
    assert len({a.day for a in result.assignments if a.employee_id == employees[0].id}) == 22


def test_missing_work_position_is_a_warning(make_employees, make_snapshot):
    snapshot = make_snapshot(make_employees(ShiftPatternCategory.FIXED_8H, 1), work_positions=[])
    result = generate_from_snapshot(snapshot, MONTH)
    assert len(result.assignments) == 22
    assert {a.work_position_id for a in result.assignments} == {None}
    assert any("Dispecerat" in w for w in result.warnings)


def test_uncategorised_employees_are_not_scheduled(make_employees, make_snapshot):
    employees = make_employees(ShiftPatternCategory.FIXED_8H, 2)
    employees[1].shift_pattern_category = None
    result = generate_from_snapshot(make_snapshot(employees), MONTH)
    assert {a.employee_id for a in result.assignments} == {employees[0].id}


@pytest.fixture
def mixed_month(make_employees, make_snapshot, approved_leave):
    twelve = make_employees(ShiftPatternCategory.ROTATING_12H, 10)
    fixed = make_employees(ShiftPatternCategory.FIXED_8H, 3)
    control = make_employees(ShiftPatternCategory.ROTATING_8H, 5)
    leaves = [
        approved_leave(twelve[2].id, date(2026, 9, 10), date(2026, 9, 18)),
        approved_leave(fixed[0].id, date(2026, 9, 21), date(2026, 9, 30)),
        approved_leave(control[4].id, date(2026, 8, 25), date(2026, 9, 4)),
    ]
    snapshot = make_snapshot(twelve + fixed + control, leaves)
    return snapshot, leaves


def test_generated_month_invariants(mixed_month):
    snapshot, leaves = mixed_month
    result = generate_from_snapshot(snapshot, MONTH)
    first, last = month_range(MONTH)

    pairs = [(a.employee_id, a.day) for a in result.assignments]
    assert len(pairs) == len(set(pairs))

    hours = Counter()
    types = {s.id: s for s in snapshot.shift_types}
    for a in result.assignments:
        hours[a.employee_id] += types[a.shift_type_id].duration_hours
        assert first <= a.day <= last
    assert max(hours.values()) <= count_working_days(2026, 9) * 8 == BUDGET

    for leave in leaves:
        d = leave.start_date
        while d <= leave.end_date:
            if d.weekday() < 5:
                assert (leave.employee_id, d) not in set(pairs)
            d += timedelta(days=1)

    assert result.stats.total_assignments == len(result.assignments)
    assert result.stats.users_scheduled == len({a.employee_id for a in result.assignments})
    assert (result.stats.replacements_needed, result.stats.replacements_found) == (0, 0)


def test_fallback_shifts_still_respect_rest(mixed_month):
    snapshot, _ = mixed_month
    result = generate_from_snapshot(snapshot, MONTH)
    twelve_ids = {e.id for e in snapshot.employees if e.shift_pattern_category == ShiftPatternCategory.ROTATING_12H}
    types = {s.id: s for s in snapshot.shift_types}

    by_employee = {}
    for a in result.assignments:
        if a.employee_id in twelve_ids:
            by_employee.setdefault(a.employee_id, []).append(a)
    for items in by_employee.values():
        items.sort(key=lambda a: a.day)
        for cur, nxt in zip(items, items[1:]):
            cur_type, nxt_type = types[cur.shift_type_id], types[nxt.shift_type_id]
            cur_end = shift_window(cur.day, cur_type.start_time, cur_type.end_time)[1]
            nxt_start = shift_window(nxt.day, nxt_type.start_time, nxt_type.end_time)[0]
            # a day shift followed by the next day's night shift is exactly 24h
            assert (nxt_start - cur_end).total_seconds() / 3600 >= 24


def test_generation_is_deterministic(mixed_month):
    snapshot, _ = mixed_month
    assert generate_from_snapshot(snapshot, MONTH) == generate_from_snapshot(snapshot, MONTH)
