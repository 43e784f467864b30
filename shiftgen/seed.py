from __future__ import annotations

from datetime import time

from sqlmodel import Session, select

from shiftgen.models import ShiftType, WorkPosition


# names must match the literals the generator looks up (shiftgen.strategies)
DEFAULT_SHIFT_TYPES: list[dict] = [
    {"name": "Zi 07-19", "start_time": time(7, 0), "end_time": time(19, 0), "duration_hours": 12, "is_night_shift": False, "display_order": 1},
    {"name": "Noapte 19-07", "start_time": time(19, 0), "end_time": time(7, 0), "duration_hours": 12, "is_night_shift": True, "display_order": 2},
    {"name": "Zi 07:30-15:30", "start_time": time(7, 30), "end_time": time(15, 30), "duration_hours": 8, "is_night_shift": False, "display_order": 3},
    {"name": "Zi 08-16", "start_time": time(8, 0), "end_time": time(16, 0), "duration_hours": 8, "is_night_shift": False, "display_order": 4},
    {"name": "Zi 09-17", "start_time": time(9, 0), "end_time": time(17, 0), "duration_hours": 8, "is_night_shift": False, "display_order": 5},
    {"name": "Zi 13-21", "start_time": time(13, 0), "end_time": time(21, 0), "duration_hours": 8, "is_night_shift": False, "display_order": 6},
]

DEFAULT_WORK_POSITIONS: list[dict] = [
    {"name": "Dispecerat", "short_name": "DSP", "display_order": 1},
    {"name": "Control", "short_name": "CTL", "display_order": 2},
]


def ensure_default_catalog(session: Session) -> None:
    by_name = {s.name: s for s in session.exec(select(ShiftType)).all()}
    for data in DEFAULT_SHIFT_TYPES:
        existing = by_name.get(data["name"])
        if not existing:
            session.add(ShiftType(**data))
            continue
        # keep existing rows in line with the defaults (older DBs lack durations/night flags)
        for key, value in data.items():
            setattr(existing, key, value)
        session.add(existing)

    positions = {p.name for p in session.exec(select(WorkPosition)).all()}
    for data in DEFAULT_WORK_POSITIONS:
        if data["name"] not in positions:
            session.add(WorkPosition(**data))
    session.commit()
