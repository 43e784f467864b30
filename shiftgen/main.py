import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session

from shiftgen.db import engine, init_db
from shiftgen.routes.assignments import router as assignments_router
from shiftgen.routes.schedule import router as schedule_router
from shiftgen.routes.shift_types import router as shift_types_router
from shiftgen.routes.work_positions import router as work_positions_router
from shiftgen.seed import ensure_default_catalog

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("shiftgen.api")

app = FastAPI(title="shiftgen", version="0.3.0")

# the schedule UI is served from another origin in development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    init_db()
    with Session(engine) as session:
        ensure_default_catalog(session)
    logger.info("database ready, default catalog ensured")


@app.get("/health")
def health():
    return {"ok": True, "service": "shiftgen"}


app.include_router(shift_types_router)
app.include_router(work_positions_router)
app.include_router(assignments_router)
app.include_router(schedule_router)
