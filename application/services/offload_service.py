"""Application layer orchestration for the remote offload lifecycle.

``OffloadLifecycleService`` is the single entry point the host system
calls: object created, derivatives complete, record destroyed. It also
carries the periodic re-scan, the connection test and settings
management. Collaborators are injected by the composition root
(API/tasks), keeping dependencies one-way.
"""
from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

import aiofiles.tempfile

from application.dto import (
    ConnectionTestResult,
    DestructionResult,
    LocalCleanupReport,
    ObjectCreatedResult,
    OffloadRecordDTO,
    OffloadSettingsView,
    PublicUrlDTO,
    StorageStatsDTO,
    SyncReport,
    UploadResult,
)
from application.ports.storage import RemoteStoragePort
from application.ports.sync_stats import SyncStatsStore
from application.ports.throttle import ThrottleGate
from application.services.deferred_deletion import DeferredDeletionCoordinator
from application.services.deletion_reconciler import DeletionReconciler
from application.services.offload_config import OffloadConfiguration
from application.services.status_tracker import StatusTracker
from application.services.transfer_executor import TransferExecutor
from application.utils.storage import unique_remote_key
from core.logging_config import get_logger
from domain.common.actor import Actor
from domain.common.exceptions import (
    AdminAuthorizationException,
    DomainValidationException,
    OffloadNotConfiguredException,
    OffloadRecordNotFoundException,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.offload.credentials import is_valid_storage_zone, sanitize_storage_zone
from domain.offload.entity import OffloadRecord

logger = get_logger(__name__)

CONNECTION_TEST_PREFIX = "test/alo-test-"


class OffloadLifecycleService:
    """High-level offload workflows bridging API, tasks and domain layers."""

    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        config: OffloadConfiguration,
        storage: RemoteStoragePort,
        gate: ThrottleGate,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.perf_counter,
        sync_stats: Optional[SyncStatsStore] = None,
    ):
        self._uow_factory = uow_factory
        self._config = config
        self._storage = storage
        self._gate = gate
        self._sleep = sleep
        self._sync_stats = sync_stats
        self.tracker = StatusTracker(uow_factory)
        self.coordinator = DeferredDeletionCoordinator(uow_factory, config)
        self.executor = TransferExecutor(
            config, storage, gate, self.tracker, self.coordinator, clock=clock
        )
        self.reconciler = DeletionReconciler(uow_factory, config, storage, self.executor)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _to_dto(record: OffloadRecord) -> OffloadRecordDTO:
        return OffloadRecordDTO.model_validate(record)

    @staticmethod
    def _require_manage(actor: Optional[Actor]) -> None:
        if actor is None or not actor.can_manage:
            raise AdminAuthorizationException()

    async def _load(self, record_id: int) -> OffloadRecord:
        async with self._uow_factory(readonly=True) as uow:
            record = await uow.offload_repository.get_by_id(record_id)
        if record is None:
            raise OffloadRecordNotFoundException(record_id)
        return record

    # ------------------------------------------------------------------
    # Host events
    # ------------------------------------------------------------------
    async def on_object_created(
        self,
        record_id: int,
        local_path: str,
        derivative_paths: Optional[list[str]] = None,
    ) -> ObjectCreatedResult:
        """Register a new local object; upload it when auto-upload is on."""
        self._config.ensure_local_paths([local_path], field="local_path")
        if derivative_paths:
            self._config.ensure_local_paths(derivative_paths, field="derivative_paths")
        async with self._uow_factory() as uow:
            repo = uow.offload_repository
            record = await repo.get_by_id(record_id)
            if record is None:
                record = await repo.create(
                    OffloadRecord(
                        record_id=record_id,
                        local_path=local_path,
                        derivative_paths=list(derivative_paths or []),
                    )
                )
            elif not record.cdn_url:
                record.local_path = local_path
                if derivative_paths is not None:
                    record.replace_derivatives(derivative_paths)
                record = await repo.update(record)

        upload: Optional[UploadResult] = None
        settings = self._config.settings
        if record.cdn_url:
            logger.info("object_created_already_uploaded", record_id=record_id)
        elif settings.auto_upload and self._config.is_enabled():
            upload = await self.executor.upload(
                record.local_path, unique_remote_key(record.local_path, record_id), record_id=record_id
            )
            record = await self._load(record_id)
        return ObjectCreatedResult(record=self._to_dto(record), upload=upload)

    def ensure_local_paths(self, paths: list[str], *, field: str) -> None:
        self._config.ensure_local_paths(paths, field=field)

    async def on_derivative_generation_complete(
        self, record_id: int, derivative_paths: Optional[list[str]] = None
    ) -> LocalCleanupReport:
        return await self.coordinator.on_derivative_generation_complete(record_id, derivative_paths)

    async def on_record_destroyed(self, record_id: int) -> DestructionResult:
        return await self.reconciler.on_record_destroyed(record_id)

    # ------------------------------------------------------------------
    # Explicit transfers
    # ------------------------------------------------------------------
    async def upload_record(
        self,
        record_id: int,
        remote_key: Optional[str] = None,
        actor: Optional[Actor] = None,
    ) -> UploadResult:
        record = await self._load(record_id)
        key = remote_key or unique_remote_key(record.local_path, record_id)
        return await self.executor.upload(record.local_path, key, record_id=record_id, actor=actor)

    async def get_record(self, record_id: int) -> OffloadRecordDTO:
        return self._to_dto(await self._load(record_id))

    # ------------------------------------------------------------------
    # Periodic re-scan
    # ------------------------------------------------------------------
    async def pending_count(self) -> int:
        async with self._uow_factory(readonly=True) as uow:
            return await uow.offload_repository.count_without_cdn_url()

    async def sync_pending(self, batch_size: Optional[int] = None, *, force: bool = False) -> SyncReport:
        """Upload records that have no CDN URL yet, newest first.

        ``force`` ignores the ``auto_sync`` switch (manual sync from the
        admin surface); a disabled integration always skips.
        """
        settings = self._config.settings
        started_at = datetime.now(timezone.utc)
        if not self._config.is_enabled():
            return await self._finish_sync(
                SyncReport(skipped_reason="integration disabled or not configured", started_at=started_at)
            )
        if not settings.auto_sync and not force:
            return await self._finish_sync(
                SyncReport(skipped_reason="auto sync disabled", started_at=started_at)
            )

        limit = batch_size or settings.sync_batch_size
        async with self._uow_factory(readonly=True) as uow:
            records = await uow.offload_repository.list_without_cdn_url(limit=limit)

        report = SyncReport(started_at=started_at)
        for index, record in enumerate(records):
            if index and settings.sync_pause_seconds > 0:
                await self._sleep(settings.sync_pause_seconds)
            result = await self.executor.upload(
                record.local_path,
                unique_remote_key(record.local_path, record.record_id),
                record_id=record.record_id,
            )
            report.processed += 1
            if result.ok:
                report.successful += 1
            else:
                report.failed += 1

        logger.info(
            "sync_pending_finished",
            processed=report.processed,
            successful=report.successful,
            failed=report.failed,
        )
        return await self._finish_sync(report)

    async def _finish_sync(self, report: SyncReport) -> SyncReport:
        report.finished_at = datetime.now(timezone.utc)
        if self._sync_stats is not None:
            await self._sync_stats.save(report)
        return report

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------
    async def test_connection(self, actor: Optional[Actor]) -> ConnectionTestResult:
        """Round-trip a small file through remote storage."""
        if actor is None or not actor.can_manage:
            return ConnectionTestResult(success=False, message="Insufficient permissions")
        problems = self._config.credentials().problems()
        if not self._config.settings.enabled or problems:
            message = "; ".join(problems) if problems else "Integration is disabled"
            return ConnectionTestResult(success=False, message=f"Not configured: {message}")

        now = datetime.now(timezone.utc)
        remote_key = f"{CONNECTION_TEST_PREFIX}{int(now.timestamp())}.txt"
        async with aiofiles.tempfile.NamedTemporaryFile("wb", suffix=".txt") as tmp:
            await tmp.write(f"Connection test - {now.isoformat()}".encode("utf-8"))
            await tmp.flush()
            upload = await self.executor.upload(tmp.name, remote_key, actor=actor)

        if not upload.ok:
            logger.warning("connection_test_failed", status=upload.status)
            return ConnectionTestResult(success=False, message=f"Upload failed: {upload.status}")

        cleanup = await self.executor.delete(remote_key, actor=actor)
        if not cleanup.ok:
            logger.warning("connection_test_cleanup_failed", remote_key=remote_key, status=cleanup.status)
        return ConnectionTestResult(
            success=True,
            message="Connection successful",
            test_url=upload.cdn_url,
        )

    def settings_view(self) -> OffloadSettingsView:
        s = self._config.settings
        credentials = self._config.credentials()
        problems = credentials.problems()
        return OffloadSettingsView(
            enabled=s.enabled,
            configured=not problems,
            access_key=credentials.masked_access_key(),
            storage_zone=credentials.storage_zone,
            region=s.region,
            custom_hostname=s.custom_hostname,
            cdn_base_url=None if problems else self._storage.cdn_url("").rstrip("/"),
            offload_after_upload_enabled=s.offload_after_upload_enabled,
            auto_upload=s.auto_upload,
            auto_sync=s.auto_sync,
            override_urls=s.override_urls,
            max_concurrent_uploads=s.max_concurrent_uploads,
            problems=problems,
        )

    def set_credentials(
        self,
        actor: Optional[Actor],
        *,
        access_key: str,
        storage_zone: str,
        region: Optional[str] = None,
        custom_hostname: Optional[str] = None,
    ) -> OffloadSettingsView:
        self._require_manage(actor)
        zone = sanitize_storage_zone(storage_zone)
        if not is_valid_storage_zone(zone):
            raise DomainValidationException(
                f"Invalid storage zone: {storage_zone}",
                field="storage_zone",
                details={"sanitized": zone},
            )
        changes = {"access_key": access_key.strip(), "storage_zone": zone}
        if region is not None:
            changes["region"] = region.strip()
        if custom_hostname is not None:
            changes["custom_hostname"] = custom_hostname.strip()
        self._config.update(**changes)
        logger.info("offload_credentials_updated", actor=actor.name, storage_zone=zone)
        return self.settings_view()

    def set_enabled(self, actor: Optional[Actor], enabled: bool) -> OffloadSettingsView:
        """Enabling requires well-formed credentials; disabling always works."""
        self._require_manage(actor)
        if enabled and not self._config.credentials().is_well_formed():
            raise OffloadNotConfiguredException()
        self._config.update(enabled=enabled)
        logger.info("offload_enabled_changed", actor=actor.name, enabled=enabled)
        return self.settings_view()

    def set_auto_upload(self, actor: Optional[Actor], enabled: bool) -> OffloadSettingsView:
        self._require_manage(actor)
        self._config.update(auto_upload=enabled)
        logger.info("offload_auto_upload_changed", actor=actor.name, enabled=enabled)
        return self.settings_view()

    def set_offload_after_upload(self, actor: Optional[Actor], enabled: bool) -> OffloadSettingsView:
        self._require_manage(actor)
        self._config.update(offload_after_upload_enabled=enabled)
        logger.info("offload_after_upload_changed", actor=actor.name, enabled=enabled)
        return self.settings_view()

    async def storage_stats(self) -> StorageStatsDTO:
        credentials = self._config.credentials()
        async with self._uow_factory(readonly=True) as uow:
            pending = await uow.offload_repository.count_without_cdn_url()
            offloaded = await uow.offload_repository.count_offloaded()
        return StorageStatsDTO(
            storage_zone=credentials.storage_zone,
            region=credentials.region,
            configured=credentials.is_well_formed(),
            enabled=self._config.is_enabled(),
            pending_count=pending,
            offloaded_count=offloaded,
            active_uploads=await self._gate.current(),
            last_sync=await self._sync_stats.load() if self._sync_stats is not None else None,
        )

    async def resolve_public_url(self, record_id: int, fallback: str) -> PublicUrlDTO:
        """CDN URL when URL override is active and the record has one."""
        settings = self._config.settings
        if not (settings.override_urls and self._config.is_enabled()):
            return PublicUrlDTO(record_id=record_id, url=fallback, from_cdn=False)
        async with self._uow_factory(readonly=True) as uow:
            record = await uow.offload_repository.get_by_id(record_id)
        if record is None or not record.cdn_url:
            return PublicUrlDTO(record_id=record_id, url=fallback, from_cdn=False)
        return PublicUrlDTO(record_id=record_id, url=record.cdn_url, from_cdn=True)
