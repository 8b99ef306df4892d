"""Per-record attempt counter and last-status bookkeeping."""
from __future__ import annotations

from typing import Callable, Optional

from core.logging_config import get_logger
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.offload.outcome import TransferOutcome

logger = get_logger(__name__)


class StatusTracker:
    """Overwrites ``attempt_count`` and ``last_status`` on a record.

    Unknown record ids are logged and ignored; bookkeeping never fails a
    transfer.
    """

    def __init__(self, uow_factory: Callable[..., AbstractUnitOfWork]):
        self._uow_factory = uow_factory

    async def record_attempt(self, record_id: int) -> Optional[int]:
        async with self._uow_factory() as uow:
            record = await uow.offload_repository.get_by_id(record_id)
            if record is None:
                logger.warning("status_tracker_record_missing", record_id=record_id, op="attempt")
                return None
            attempts = record.record_attempt()
            await uow.offload_repository.update(record)
            return attempts

    async def record_outcome(self, record_id: int, outcome: TransferOutcome) -> None:
        status = outcome.status_tag
        async with self._uow_factory() as uow:
            record = await uow.offload_repository.get_by_id(record_id)
            if record is None:
                logger.warning("status_tracker_record_missing", record_id=record_id, op="outcome")
                return
            record.record_status(status)
            await uow.offload_repository.update(record)
        logger.info(
            "upload_status_recorded",
            record_id=record_id,
            status=status,
            category=outcome.category.value,
        )
