# backend/leasekeeper/workers/celery_app.py
from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from ..config import settings

celery_app = Celery(
    "leasekeeper",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["leasekeeper.workers.sweep_tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    task_track_started=True,
)

# beat fires in server local time unless a zone is configured
if settings.sweep_timezone:
    celery_app.conf.timezone = settings.sweep_timezone
else:
    celery_app.conf.enable_utc = False

celery_app.conf.task_routes = {
    "leasekeeper.workers.sweep_tasks.*": {"queue": "sweeps"},
}

celery_app.conf.beat_schedule = {
    "daily-lease-sweep": {
        "task": "leasekeeper.workers.sweep_tasks.run_daily_sweep",
        "schedule": crontab(hour=settings.sweep_hour, minute=settings.sweep_minute),
    },
}
