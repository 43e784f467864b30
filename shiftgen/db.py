import os
from pathlib import Path

from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine


def _default_sqlite_url() -> str:
    # DB lives under /app/data/app.db by default (mounted as a docker volume)
    data_dir = Path(os.environ.get("APP_DATA_DIR", "/app/data"))
    data_dir.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{(data_dir / 'app.db').as_posix()}"


DATABASE_URL = os.environ.get("DATABASE_URL") or _default_sqlite_url()

connect_args = {}
engine_kwargs = {}
if DATABASE_URL.startswith("sqlite:"):
    connect_args = {"check_same_thread": False}
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every checkout sees an empty database
        engine_kwargs["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args, **engine_kwargs)


def init_db() -> None:
    # models must be imported so their tables are registered on the metadata
    from shiftgen import models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    _sqlite_light_migrate()


def _sqlite_light_migrate() -> None:
    # Older app.db files predate the scheduling columns; add them in place
    if not DATABASE_URL.startswith("sqlite:"):
        return

    with engine.connect() as conn:
        employee_cols = {r[1] for r in conn.exec_driver_sql("PRAGMA table_info(employee)").fetchall()}
        assignment_cols = {r[1] for r in conn.exec_driver_sql("PRAGMA table_info(assignment)").fetchall()}

        def add_col(existing_cols: set, sql: str, col_name: str) -> None:
            if col_name in existing_cols:
                return
            conn.exec_driver_sql(sql)

        add_col(employee_cols, "ALTER TABLE employee ADD COLUMN shift_pattern_category VARCHAR", "shift_pattern_category")
        add_col(employee_cols, "ALTER TABLE employee ADD COLUMN department VARCHAR", "department")
        add_col(assignment_cols, "ALTER TABLE assignment ADD COLUMN work_position_id INTEGER", "work_position_id")
        add_col(assignment_cols, "ALTER TABLE assignment ADD COLUMN work_schedule_id INTEGER", "work_schedule_id")

        conn.commit()


def get_session():
    with Session(engine) as session:
        yield session
