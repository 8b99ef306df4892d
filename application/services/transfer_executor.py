"""Upload and delete of single objects against remote storage.

Both operations return result objects and never raise for transfer
problems; every outcome belongs to the closed ``TransferErrorKind`` set.
"""
from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Callable, Optional

import aiofiles
import aiofiles.os

from application.dto import DeleteResult, UploadResult
from application.ports.storage import RemoteStoragePort
from application.ports.throttle import ThrottleGate
from application.services.deferred_deletion import DeferredDeletionCoordinator
from application.services.offload_config import OffloadConfiguration
from application.services.status_tracker import StatusTracker
from application.utils.storage import adaptive_timeout, guess_content_type, sanitize_remote_key
from core.logging_config import get_logger
from domain.common.actor import Actor
from domain.offload.outcome import TransferErrorKind, TransferOutcome

logger = get_logger(__name__)


class TransferExecutor:
    def __init__(
        self,
        config: OffloadConfiguration,
        storage: RemoteStoragePort,
        gate: ThrottleGate,
        tracker: StatusTracker,
        coordinator: Optional[DeferredDeletionCoordinator] = None,
        *,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self._config = config
        self._storage = storage
        self._gate = gate
        self._tracker = tracker
        self._coordinator = coordinator
        self._clock = clock

    async def upload(
        self,
        local_path: str,
        remote_key: str,
        record_id: Optional[int] = None,
        actor: Optional[Actor] = None,
    ) -> UploadResult:
        if record_id is not None:
            await self._tracker.record_attempt(record_id)

        if not await self._gate.acquire():
            outcome = TransferOutcome.failure(TransferErrorKind.THROTTLED)
            result = UploadResult.from_outcome(outcome)
            await self._finish(record_id, result, outcome)
            return result

        try:
            outcome, key, timeout = await self._transfer(local_path, remote_key, actor or Actor.system())
        finally:
            await self._gate.release()

        cdn_url = self._storage.cdn_url(key) if outcome.ok else None
        result = UploadResult.from_outcome(outcome, cdn_url=cdn_url, remote_key=key or None, timeout=timeout)
        await self._finish(record_id, result, outcome)

        if outcome.ok and record_id is not None and self._coordinator is not None:
            await self._coordinator.on_upload_succeeded(record_id, cdn_url, key)
        return result

    async def _transfer(
        self, local_path: str, remote_key: str, actor: Actor
    ) -> tuple[TransferOutcome, str, Optional[float]]:
        if actor.is_denied():
            return TransferOutcome.failure(TransferErrorKind.INSUFFICIENT_PERMISSIONS), "", None
        if not self._config.is_enabled():
            return TransferOutcome.failure(TransferErrorKind.NOT_CONFIGURED), "", None

        path = Path(local_path)
        if not await aiofiles.os.path.isfile(path) or not os.access(path, os.R_OK):
            return TransferOutcome.failure(TransferErrorKind.FILE_UNREADABLE, detail=str(path)), "", None

        key = sanitize_remote_key(remote_key)
        if not key:
            return TransferOutcome.failure(TransferErrorKind.EMPTY_KEY), "", None

        try:
            async with aiofiles.open(path, "rb") as f:
                body = await f.read()
        except OSError as exc:
            return TransferOutcome.failure(TransferErrorKind.READ_FAILED, detail=str(exc)), key, None

        size = len(body)
        timeout = adaptive_timeout(size)
        logger.info("upload_started", remote_key=key, size=size, timeout_s=round(timeout, 2))

        started = self._clock()
        outcome = await self._storage.put_object(
            key, body, content_type=guess_content_type(path.name), timeout=timeout
        )
        elapsed = self._clock() - started

        if outcome.ok:
            throughput = (size * 8 / elapsed / 1_000_000) if elapsed > 0 else None
            logger.info(
                "upload_succeeded",
                remote_key=key,
                size=size,
                elapsed_s=round(elapsed, 3),
                throughput_mbps=round(throughput, 2) if throughput is not None else None,
            )
        else:
            logger.warning(
                "upload_failed",
                remote_key=key,
                status=outcome.status_tag,
                category=outcome.category.value,
                status_code=outcome.status_code,
                detail=outcome.detail,
                elapsed_s=round(elapsed, 3),
            )
        return outcome, key, timeout

    async def _finish(self, record_id: Optional[int], result: UploadResult, outcome: TransferOutcome) -> None:
        if record_id is not None:
            await self._tracker.record_outcome(record_id, outcome)
        elif not result.ok:
            logger.info("upload_outcome", status=result.status, category=result.category.value)

    async def delete(self, remote_key: str, actor: Optional[Actor] = None) -> DeleteResult:
        actor = actor or Actor.system()
        if actor.is_denied():
            return DeleteResult.from_outcome(TransferOutcome.failure(TransferErrorKind.INSUFFICIENT_PERMISSIONS))
        if not self._config.is_enabled():
            return DeleteResult.from_outcome(TransferOutcome.failure(TransferErrorKind.NOT_CONFIGURED))

        key = sanitize_remote_key(remote_key)
        if not key:
            return DeleteResult.from_outcome(TransferOutcome.failure(TransferErrorKind.EMPTY_KEY))

        outcome = await self._storage.delete_object(key, timeout=self._config.settings.delete_timeout_seconds)
        if outcome.ok:
            logger.info("remote_delete_succeeded", remote_key=key, status=outcome.status_tag)
        else:
            logger.warning(
                "remote_delete_failed",
                remote_key=key,
                status=outcome.status_tag,
                category=outcome.category.value,
            )
        return DeleteResult.from_outcome(outcome, remote_key=key)
