"""Celery beat schedule configuration.

The offload re-scan is the only periodic job; it replaces automatic retries
for uploads that failed or never ran.
"""
from __future__ import annotations

from core.config import settings

CELERY_BEAT_SCHEDULE = {}

if settings.offload.auto_sync:
    CELERY_BEAT_SCHEDULE["offload-sync-pending"] = {
        "task": "offload.sync_pending",
        "schedule": float(settings.offload.sync_interval_seconds),
        "kwargs": {"batch_size": settings.offload.sync_batch_size},
    }
