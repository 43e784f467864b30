from typing import Optional

from celery.utils.log import get_task_logger
from sqlmodel import Session

from shiftgen.celery_app import celery_app
from shiftgen.db import engine
from shiftgen.schedule_service import save_generated_schedule

logger = get_task_logger(__name__)


@celery_app.task(name="schedule.generate_and_save")
def generate_and_save(month: str, created_by: Optional[int] = None) -> dict:
    logger.info("generate_and_save task received: %s", month)
    with Session(engine) as session:
        result = save_generated_schedule(session, month, created_by)
    logger.info("generate_and_save finished %s: %d assignments", month, result.stats.total_assignments)
    return {
        "month": month,
        "schedule_id": result.schedule_id,
        "warnings": result.warnings,
        "stats": {
            "total_assignments": result.stats.total_assignments,
            "users_scheduled": result.stats.users_scheduled,
            "replacements_needed": result.stats.replacements_needed,
            "replacements_found": result.stats.replacements_found,
        },
    }
