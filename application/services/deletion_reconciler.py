"""Remote cleanup when an object record is destroyed."""
from __future__ import annotations

from typing import Callable

from application.dto import DestructionResult, RemoteCleanup
from application.ports.storage import RemoteStoragePort
from application.services.offload_config import OffloadConfiguration
from application.services.transfer_executor import TransferExecutor
from core.logging_config import get_logger
from domain.common.unit_of_work import AbstractUnitOfWork

logger = get_logger(__name__)


class DeletionReconciler:
    """Deletes the remote copy of a destroyed record.

    Destruction is never vetoed: the caller always gets a
    ``DestructionResult`` describing what happened remotely. The offload
    row is dropped when nothing remote is left to track (``deleted`` and
    ``skipped``); in every other case it is kept untouched so the remote
    object stays discoverable.
    """

    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        config: OffloadConfiguration,
        storage: RemoteStoragePort,
        executor: TransferExecutor,
    ):
        self._uow_factory = uow_factory
        self._config = config
        self._storage = storage
        self._executor = executor

    async def on_record_destroyed(self, record_id: int) -> DestructionResult:
        async with self._uow_factory() as uow:
            record = await uow.offload_repository.get_by_id(record_id)
            if record is None or not record.cdn_url:
                if record is not None:
                    await uow.offload_repository.delete(record_id)
                logger.info("record_destroyed_nothing_remote", record_id=record_id)
                return DestructionResult(record_id=record_id, remote_cleanup=RemoteCleanup.SKIPPED)
            cdn_url = record.cdn_url

        if not self._config.is_enabled():
            logger.warning("record_destroyed_integration_disabled", record_id=record_id, cdn_url=cdn_url)
            return DestructionResult(record_id=record_id, remote_cleanup=RemoteCleanup.DISABLED)

        remote_key = self._storage.remote_key_from_url(cdn_url)
        if not remote_key:
            logger.error("record_destroyed_unparsable_url", record_id=record_id, cdn_url=cdn_url)
            return DestructionResult(record_id=record_id, remote_cleanup=RemoteCleanup.UNPARSABLE_URL)

        result = await self._executor.delete(remote_key)
        if not result.ok:
            logger.error(
                "record_destroyed_remote_delete_failed",
                record_id=record_id,
                remote_key=remote_key,
                status=result.status,
            )
            return DestructionResult(
                record_id=record_id,
                remote_cleanup=RemoteCleanup.FAILED,
                remote_key=remote_key,
                status=result.status,
            )

        async with self._uow_factory() as uow:
            await uow.offload_repository.delete(record_id)

        logger.info("record_destroyed_remote_deleted", record_id=record_id, remote_key=remote_key)
        return DestructionResult(
            record_id=record_id,
            remote_cleanup=RemoteCleanup.DELETED,
            remote_key=remote_key,
            status=result.status,
        )
