"""Two-phase local deletion after a successful upload.

Phase 1 runs right after the upload and only marks the record as pending;
the local files are still needed by the derivative generator. Phase 2 runs
once that generator reports completion and removes the local files.

    NOT_OFFLOADED --upload ok--> UPLOADED            (offload-after-upload off)
    NOT_OFFLOADED --upload ok--> PENDING_OFFLOAD     (offload-after-upload on)
    PENDING_OFFLOAD --derivatives complete, primary removed--> OFFLOADED

A failed or impossible primary deletion keeps the record in
PENDING_OFFLOAD with every derivative untouched.
"""
from __future__ import annotations

from typing import Callable, Optional

import aiofiles.os

from application.dto import LocalCleanupReport
from application.services.offload_config import OffloadConfiguration
from core.logging_config import get_logger
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.offload.entity import OffloadState

logger = get_logger(__name__)


class DeferredDeletionCoordinator:
    def __init__(self, uow_factory: Callable[..., AbstractUnitOfWork], config: OffloadConfiguration):
        self._uow_factory = uow_factory
        self._config = config

    async def on_upload_succeeded(
        self, record_id: int, cdn_url: str, remote_key: str
    ) -> Optional[OffloadState]:
        """Phase 1: persist the remote location, never touches local files."""
        defer = self._config.settings.offload_after_upload_enabled
        async with self._uow_factory() as uow:
            record = await uow.offload_repository.get_by_id(record_id)
            if record is None:
                logger.warning("upload_success_for_unknown_record", record_id=record_id)
                return None
            record.mark_uploaded(cdn_url, remote_key, defer_local_deletion=defer)
            await uow.offload_repository.update(record)
            state = record.state
        logger.info(
            "upload_recorded",
            record_id=record_id,
            remote_key=remote_key,
            state=state.value,
        )
        return state

    async def on_derivative_generation_complete(
        self, record_id: int, derivative_paths: Optional[list[str]] = None
    ) -> LocalCleanupReport:
        """Phase 2: delete the primary, then derivatives best-effort."""
        if derivative_paths:
            self._config.ensure_local_paths(derivative_paths, field="derivative_paths")
        report = LocalCleanupReport(record_id=record_id)
        async with self._uow_factory() as uow:
            repo = uow.offload_repository
            record = await repo.get_by_id(record_id)
            if record is None:
                logger.warning("derivatives_complete_for_unknown_record", record_id=record_id)
                return report

            if derivative_paths is not None:
                record.replace_derivatives(derivative_paths)

            report.state = record.state
            if not record.is_pending():
                if derivative_paths is not None:
                    await repo.update(record)
                logger.info(
                    "derivatives_complete_ignored",
                    record_id=record_id,
                    state=record.state.value,
                )
                return report

            primary = record.local_path
            if not await aiofiles.os.path.exists(primary):
                await repo.update(record)
                logger.error("offload_primary_missing", record_id=record_id, path=primary)
                return report
            try:
                await aiofiles.os.remove(primary)
            except OSError as exc:
                await repo.update(record)
                logger.error(
                    "offload_primary_delete_failed",
                    record_id=record_id,
                    path=primary,
                    error=str(exc),
                )
                return report
            report.primary_deleted = True

            for path in record.derivative_paths:
                if not await aiofiles.os.path.exists(path):
                    continue
                try:
                    await aiofiles.os.remove(path)
                    report.derivatives_deleted += 1
                except OSError as exc:
                    report.derivatives_failed.append(path)
                    logger.warning(
                        "offload_derivative_delete_failed",
                        record_id=record_id,
                        path=path,
                        error=str(exc),
                    )

            record.mark_offloaded()
            await repo.update(record)
            report.state = record.state

        logger.info(
            "local_files_offloaded",
            record_id=record_id,
            derivatives_deleted=report.derivatives_deleted,
            derivatives_failed=len(report.derivatives_failed),
        )
        return report
