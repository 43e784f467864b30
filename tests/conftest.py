import itertools
import os

# must be set before shiftgen.db / shiftgen.celery_app are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "1"

import pytest
from sqlmodel import Session, SQLModel

from shiftgen.db import engine, init_db
from shiftgen.loader import RosterSnapshot
from shiftgen.models import (
    Assignment,
    Employee,
    LeaveRequest,
    LeaveStatus,
    ScheduleStatus,
    ShiftType,
    WorkPosition,
    WorkSchedule,
)
from shiftgen.seed import DEFAULT_SHIFT_TYPES, DEFAULT_WORK_POSITIONS, ensure_default_catalog

# ids the in-memory catalog hands out, in DEFAULT_SHIFT_TYPES order
SHIFT_IDS = {data["name"]: i for i, data in enumerate(DEFAULT_SHIFT_TYPES, start=1)}


def default_shift_types() -> list[ShiftType]:
    return [ShiftType(id=i, **data) for i, data in enumerate(DEFAULT_SHIFT_TYPES, start=1)]


def default_work_positions() -> list[WorkPosition]:
    return [WorkPosition(id=i, **data) for i, data in enumerate(DEFAULT_WORK_POSITIONS, start=1)]


@pytest.fixture
def shift_ids():
    return dict(SHIFT_IDS)


@pytest.fixture
def make_employees():
    ids = itertools.count(1)

    def _make(category, count):
        out = []
        for n in range(count):
            emp_id = next(ids)
            out.append(Employee(id=emp_id, name=f"{category.value} #{n}", shift_pattern_category=category))
        return out

    return _make


@pytest.fixture
def make_snapshot():
    def _make(employees=(), leaves=(), shift_types=None, work_positions=None):
        return RosterSnapshot(
            employees=list(employees),
            shift_types=default_shift_types() if shift_types is None else list(shift_types),
            work_positions=default_work_positions() if work_positions is None else list(work_positions),
            leaves=list(leaves),
        )

    return _make


@pytest.fixture
def approved_leave():
    def _make(employee_id, start, end, status=LeaveStatus.APPROVED):
        return LeaveRequest(employee_id=employee_id, start_date=start, end_date=end, status=status)

    return _make


@pytest.fixture
def session():
    from shiftgen import models  # noqa: F401

    SQLModel.metadata.drop_all(engine)
    init_db()
    with Session(engine) as s:
        ensure_default_catalog(s)
        yield s


@pytest.fixture
def add_employees(session):
    def _add(category, count):
        out = [Employee(name=f"{category.value} #{n}", shift_pattern_category=category) for n in range(count)]
        for e in out:
            session.add(e)
        session.commit()
        for e in out:
            session.refresh(e)
        return out

    return _add


@pytest.fixture
def draft_schedule(session):
    def _make(employee_id, days, shift_type_id=SHIFT_IDS["Zi 07:30-15:30"]):
        first = days[0]
        schedule = WorkSchedule(name="Draft", month=first.month, year=first.year, status=ScheduleStatus.DRAFT)
        session.add(schedule)
        session.flush()
        for d in days:
            session.add(
                Assignment(work_schedule_id=schedule.id, employee_id=employee_id, day=d, shift_type_id=shift_type_id)
            )
        session.commit()
        return schedule.id

    return _make


@pytest.fixture
def client(session):
    from fastapi.testclient import TestClient

    from shiftgen.db import get_session
    from shiftgen.main import app

    app.dependency_overrides[get_session] = lambda: session
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
