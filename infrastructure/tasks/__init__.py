"""Celery wiring for background offload jobs (re-scan, local cleanup, remote cleanup)."""
from .config.celery import celery_app
from .utils.dispatcher import TaskDispatcher

__all__ = ["celery_app", "TaskDispatcher"]
