"""Common base task for offload jobs"""
from __future__ import annotations

from celery import Task
from core.logging_config import get_logger

logger = get_logger(__name__)

# Report fields worth lifting into the success log line
_SUMMARY_FIELDS = ("processed", "successful", "failed", "remote_cleanup", "state", "primary_deleted")


class BaseTask(Task):
    """Structured start/finish logging keyed by ``record_id`` when present."""

    @staticmethod
    def _record_id(args, kwargs):
        if kwargs and "record_id" in kwargs:
            return kwargs["record_id"]
        return None

    def on_failure(self, exc, task_id, args, kwargs, einfo):  # type: ignore[override]
        logger.error(
            "offload_task_failure",
            task_id=task_id,
            task_name=self.name,
            record_id=self._record_id(args, kwargs),
            exc_type=type(exc).__name__,
            exc=str(exc),
        )
        super().on_failure(exc, task_id, args, kwargs, einfo)

    def on_success(self, retval, task_id, args, kwargs):  # type: ignore[override]
        summary = {}
        if isinstance(retval, dict):
            summary = {k: retval[k] for k in _SUMMARY_FIELDS if k in retval}
        logger.info(
            "offload_task_success",
            task_id=task_id,
            task_name=self.name,
            record_id=self._record_id(args, kwargs),
            **summary,
        )
        super().on_success(retval, task_id, args, kwargs)
