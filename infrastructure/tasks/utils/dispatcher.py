"""Queue offload jobs by name so callers never import task modules."""
from __future__ import annotations

from typing import Optional

from ..config.celery import celery_app


class TaskDispatcher:
    """Facade used by the API layer to hand work to Celery workers."""

    def enqueue_sync(self, batch_size: Optional[int] = None, *, force: bool = True) -> str:
        result = celery_app.send_task(
            "offload.sync_pending",
            kwargs={"batch_size": batch_size, "force": force},
        )
        return result.id

    def enqueue_derivatives_complete(self, record_id: int, derivative_paths: Optional[list[str]] = None) -> str:
        result = celery_app.send_task(
            "offload.derivatives_complete",
            kwargs={"record_id": record_id, "derivative_paths": derivative_paths},
        )
        return result.id

    def enqueue_record_destroyed(self, record_id: int) -> str:
        result = celery_app.send_task("offload.record_destroyed", kwargs={"record_id": record_id})
        return result.id
