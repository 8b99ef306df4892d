"""Celery application for offload jobs"""
from __future__ import annotations

import os

from celery import Celery
from kombu import Queue

from core.config import settings
from core.logging_config import get_logger
from .beat import CELERY_BEAT_SCHEDULE

logger = get_logger(__name__)

OFFLOAD_QUEUE = "offload"
TASK_MODULES = ("infrastructure.tasks.tasks",)


celery_app = Celery("media_offload")

celery_app.conf.update(
    broker_url=settings.redis.url or os.getenv("CELERY_BROKER_URL"),
    result_backend=settings.redis.url or os.getenv("CELERY_RESULT_BACKEND"),
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # Uploads are not retried by Celery; the periodic re-scan picks up failures
    task_acks_late=False,
    task_track_started=True,
    result_expires=3600,
    # One upload at a time per worker process; the throttle gate caps the total
    worker_prefetch_multiplier=1,
    task_default_queue=OFFLOAD_QUEUE,
    task_queues=(Queue(OFFLOAD_QUEUE),),
    task_routes={"offload.*": {"queue": OFFLOAD_QUEUE}},
    beat_schedule=CELERY_BEAT_SCHEDULE,
)

celery_app.conf.imports = TASK_MODULES

celery_app.autodiscover_tasks(packages=TASK_MODULES)


@celery_app.on_after_configure.connect
def _log_configuration(sender, **kwargs):
    logger.info(
        "celery_configured",
        queue=OFFLOAD_QUEUE,
        beat_jobs=sorted(sender.conf.beat_schedule or {}),
    )
