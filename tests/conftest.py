"""Pytest bootstrap configuration.

Ensure environment variables are set before test collection and module
imports that depend on application settings, then provide in-memory
collaborators for the offload service.
"""
import os

os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ADMIN_API_TOKEN", "test-admin-token")
os.environ.setdefault("HOST_EVENT_TOKEN", "test-host-token")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.pop("REDIS__URL", None)

import copy
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx
import pytest

from application.services.offload_config import OffloadConfiguration
from application.services.offload_service import OffloadLifecycleService
from core.config import OffloadSettings
from domain.common.exceptions import OffloadRecordAlreadyExistsException, OffloadRecordNotFoundException
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.offload import OffloadRecord, OffloadRecordRepository
from infrastructure.cache import CounterThrottleGate, InMemoryCounterStore, KeyValueSyncStatsStore
from infrastructure.external.storage import BunnyStorageClient

ACCESS_KEY = "test-access-key-1234"


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryOffloadRecordRepository(OffloadRecordRepository):
    """Dict-backed repository; hands out copies so unsaved changes stay local."""

    def __init__(self):
        self.records: dict[int, OffloadRecord] = {}
        self._sequence = 0

    async def create(self, record: OffloadRecord) -> OffloadRecord:
        if record.record_id in self.records:
            raise OffloadRecordAlreadyExistsException(record.record_id)
        stored = copy.deepcopy(record)
        if stored.created_at is None:
            # Strictly increasing so newest-first ordering is deterministic
            self._sequence += 1
            stored.created_at = datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=self._sequence)
        self.records[record.record_id] = stored
        return copy.deepcopy(stored)

    async def update(self, record: OffloadRecord) -> OffloadRecord:
        if record.record_id not in self.records:
            raise OffloadRecordNotFoundException(record.record_id)
        self.records[record.record_id] = copy.deepcopy(record)
        return copy.deepcopy(record)

    async def delete(self, record_id: int) -> None:
        self.records.pop(record_id, None)

    async def get_by_id(self, record_id: int) -> Optional[OffloadRecord]:
        record = self.records.get(record_id)
        return copy.deepcopy(record) if record else None

    async def list_without_cdn_url(self, *, limit: int = 25) -> list[OffloadRecord]:
        pending = [r for r in self.records.values() if not r.cdn_url]
        pending.sort(key=lambda r: (r.created_at, r.record_id), reverse=True)
        return [copy.deepcopy(r) for r in pending[:limit]]

    async def count_without_cdn_url(self) -> int:
        return sum(1 for r in self.records.values() if not r.cdn_url)

    async def count_offloaded(self) -> int:
        return sum(1 for r in self.records.values() if r.offloaded)


class InMemoryUnitOfWork(AbstractUnitOfWork):
    def __init__(self, repository: InMemoryOffloadRecordRepository, *, readonly: bool = False):
        super().__init__(readonly=readonly)
        self.offload_repository = repository

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        self._committed = False


class FakeStorageServer:
    """In-process stand-in for the storage API, served through MockTransport."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.objects: dict[str, bytes] = {}
        self.put_status = 201
        self.delete_status: Optional[int] = None
        self.fail_with: Optional[Callable[[httpx.Request], Exception]] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with(request)
        key = request.url.path.split("/", 2)[2]
        if request.method == "PUT":
            if 200 <= self.put_status < 300:
                self.objects[key] = request.content
            return httpx.Response(self.put_status, json={"HttpCode": self.put_status})
        if request.method == "DELETE":
            if self.delete_status is not None:
                return httpx.Response(self.delete_status)
            if self.objects.pop(key, None) is None:
                return httpx.Response(404, json={"HttpCode": 404, "Message": "Object Not Found"})
            return httpx.Response(200, json={"HttpCode": 200})
        return httpx.Response(405)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository() -> InMemoryOffloadRecordRepository:
    return InMemoryOffloadRecordRepository()


@pytest.fixture
def uow_factory(repository):
    def factory(*, readonly: bool = False) -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(repository, readonly=readonly)

    return factory


@pytest.fixture
def offload_settings(tmp_path) -> OffloadSettings:
    return OffloadSettings(
        enabled=True,
        access_key=ACCESS_KEY,
        storage_zone="myzone",
        offload_after_upload_enabled=True,
        media_root=str(tmp_path),
    )


@pytest.fixture
def configuration(offload_settings) -> OffloadConfiguration:
    return OffloadConfiguration(offload_settings)


@pytest.fixture
def fake_storage() -> FakeStorageServer:
    return FakeStorageServer()


@pytest.fixture
async def storage_client(configuration, fake_storage):
    client = BunnyStorageClient(configuration.credentials, transport=fake_storage.transport())
    yield client
    await client.aclose()


@pytest.fixture
def counter_store(clock) -> InMemoryCounterStore:
    return InMemoryCounterStore(clock=clock)


@pytest.fixture
def gate(counter_store) -> CounterThrottleGate:
    return CounterThrottleGate(counter_store, max_concurrent=3, ttl_seconds=300)


@pytest.fixture
def sleeps() -> list:
    return []


@pytest.fixture
def service(uow_factory, configuration, storage_client, gate, counter_store, sleeps) -> OffloadLifecycleService:
    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return OffloadLifecycleService(
        uow_factory,
        configuration,
        storage_client,
        gate,
        sleep=fake_sleep,
        sync_stats=KeyValueSyncStatsStore(counter_store),
    )


@pytest.fixture
def make_record(repository, tmp_path):
    """Create local files on disk and register a record for them."""

    async def _make(
        record_id: int,
        *,
        name: str = "photo.jpg",
        size: int = 2048,
        derivatives: int = 0,
        **fields,
    ) -> OffloadRecord:
        folder = tmp_path / f"r{record_id}"
        folder.mkdir(exist_ok=True)
        primary = folder / name
        primary.write_bytes(b"x" * size)
        derivative_paths = []
        for i in range(derivatives):
            d = folder / f"{primary.stem}-{i}{primary.suffix}"
            d.write_bytes(b"d" * 16)
            derivative_paths.append(str(d))
        record = OffloadRecord(
            record_id=record_id,
            local_path=str(primary),
            derivative_paths=derivative_paths,
            **fields,
        )
        return await repository.create(record)

    return _make
