import os

from celery import Celery

redis_url = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

celery_app = Celery(
    "shiftgen",
    broker=redis_url,
    backend=redis_url,
    include=["shiftgen.tasks"],
)

celery_app.conf.update(
    task_track_started=True,
    # generation results are only polled right after enqueueing
    result_expires=int(os.environ.get("CELERY_RESULT_EXPIRES", "86400")),
    # run tasks inline (no broker) for local runs and tests
    task_always_eager=os.environ.get("CELERY_TASK_ALWAYS_EAGER", "0") == "1",
)
