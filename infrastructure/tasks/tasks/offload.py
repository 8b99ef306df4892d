"""Offload related Celery tasks"""
from __future__ import annotations

import asyncio
from typing import Optional

from celery import shared_task

from ..utils.base_task import BaseTask
from core.logging_config import get_logger
from infrastructure.offload_runtime import offload_service_scope

logger = get_logger(__name__)


@shared_task(name="offload.sync_pending", bind=True, base=BaseTask)
def sync_pending_uploads(self, batch_size: Optional[int] = None, force: bool = False) -> dict:
    """Periodic re-scan: upload records that still have no CDN URL.

    No Celery-level retry; the next beat run picks up whatever failed.
    """

    async def _run():
        async with offload_service_scope() as service:
            return await service.sync_pending(batch_size, force=force)

    report = asyncio.run(_run())
    logger.info(
        "offload_sync_task_done",
        processed=report.processed,
        successful=report.successful,
        failed=report.failed,
        skipped_reason=report.skipped_reason,
    )
    return report.model_dump()


@shared_task(name="offload.derivatives_complete", bind=True, base=BaseTask)
def process_derivatives_complete(self, record_id: int, derivative_paths: Optional[list[str]] = None) -> dict:
    """Phase-two local cleanup, queued by the derivative generator."""

    async def _run():
        async with offload_service_scope() as service:
            return await service.on_derivative_generation_complete(record_id, derivative_paths)

    return asyncio.run(_run()).model_dump()


@shared_task(name="offload.record_destroyed", bind=True, base=BaseTask)
def process_record_destroyed(self, record_id: int) -> dict:
    """Remote cleanup for a destroyed record."""

    async def _run():
        async with offload_service_scope() as service:
            return await service.on_record_destroyed(record_id)

    return asyncio.run(_run()).model_dump()
