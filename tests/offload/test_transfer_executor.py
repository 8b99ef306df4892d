import os

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from application.services.offload_service import OffloadLifecycleService
from domain.common.actor import Actor
from domain.offload.outcome import ErrorCategory, TransferErrorKind
from domain.offload import OffloadState
from infrastructure.cache import CounterThrottleGate


async def test_successful_upload_updates_record(service, make_record, repository, fake_storage):
    record = await make_record(1, size=250_000)

    result = await service.executor.upload(record.local_path, "photo_1.jpg", record_id=1)

    assert result.ok
    assert result.status == "success"
    assert result.cdn_url == "https://myzone.b-cdn.net/photo_1.jpg"
    assert result.timeout == pytest.approx(32.44, abs=0.01)
    assert len(fake_storage.objects["photo_1.jpg"]) == 250_000
    stored = repository.records[1]
    assert stored.attempt_count == 1
    assert stored.last_status == "success"
    assert stored.cdn_url == result.cdn_url
    assert stored.remote_key == "photo_1.jpg"
    assert stored.state is OffloadState.PENDING_OFFLOAD
    assert os.path.exists(record.local_path)


async def test_upload_without_deferred_deletion_stays_uploaded(service, make_record, repository, configuration):
    configuration.update(offload_after_upload_enabled=False)
    record = await make_record(1)
    await service.executor.upload(record.local_path, "photo_1.jpg", record_id=1)
    assert repository.records[1].state is OffloadState.UPLOADED


async def test_remote_404_is_recorded_as_error(service, make_record, repository, fake_storage):
    fake_storage.put_status = 404
    record = await make_record(1)

    result = await service.executor.upload(record.local_path, "photo_1.jpg", record_id=1)

    assert not result.ok
    assert result.status == "error: not found"
    assert result.category is ErrorCategory.PROTOCOL
    stored = repository.records[1]
    assert stored.last_status == "error: not found"
    assert stored.cdn_url is None
    assert stored.state is OffloadState.NOT_OFFLOADED


async def test_throttled_upload_does_not_touch_counter(service, make_record, gate, repository, fake_storage):
    record = await make_record(1)
    for _ in range(3):
        await gate.acquire()

    result = await service.executor.upload(record.local_path, "photo_1.jpg", record_id=1)

    assert result.outcome is TransferErrorKind.THROTTLED
    assert result.status == "error: throttled (too many concurrent uploads)"
    assert await gate.current() == 3
    assert fake_storage.requests == []
    assert repository.records[1].attempt_count == 1


async def test_gate_released_after_every_admitted_upload(service, make_record, gate, fake_storage):
    record = await make_record(1)
    fake_storage.put_status = 500

    await service.executor.upload(record.local_path, "a.jpg", record_id=1)
    await service.executor.upload("/no/such/file.jpg", "b.jpg")
    await service.executor.upload(record.local_path, "c.jpg")

    assert await gate.current() == 0


async def test_attempts_accumulate(service, make_record, repository, fake_storage):
    record = await make_record(1)
    fake_storage.put_status = 503
    await service.executor.upload(record.local_path, "a.jpg", record_id=1)
    fake_storage.put_status = 201
    await service.executor.upload(record.local_path, "a.jpg", record_id=1)
    assert repository.records[1].attempt_count == 2
    assert repository.records[1].last_status == "success"


async def test_admin_context_without_rights_is_denied(service, make_record, fake_storage):
    record = await make_record(1)
    result = await service.executor.upload(
        record.local_path, "a.jpg", record_id=1, actor=Actor.anonymous_admin_context()
    )
    assert result.status == "error: insufficient permissions"
    assert result.category is ErrorCategory.AUTHORIZATION
    assert fake_storage.requests == []


async def test_administrator_may_upload(service, make_record):
    record = await make_record(1)
    result = await service.executor.upload(record.local_path, "a.jpg", actor=Actor.administrator())
    assert result.ok


async def test_disabled_integration(service, make_record, configuration, fake_storage):
    configuration.update(enabled=False)
    record = await make_record(1)
    result = await service.executor.upload(record.local_path, "a.jpg", record_id=1)
    assert result.status == "error: not enabled or configured"
    assert fake_storage.requests == []


async def test_malformed_credentials_count_as_not_configured(service, make_record, configuration):
    configuration.update(storage_zone="cdn.example.com")
    record = await make_record(1)
    result = await service.executor.upload(record.local_path, "a.jpg")
    assert result.outcome is TransferErrorKind.NOT_CONFIGURED


async def test_missing_file(service, repository, make_record, tmp_path):
    await make_record(1)
    result = await service.executor.upload(str(tmp_path / "missing.jpg"), "a.jpg", record_id=1)
    assert result.status == "error: file not found or not readable"
    assert repository.records[1].last_status == result.status


async def test_directory_is_not_a_readable_file(service, tmp_path):
    result = await service.executor.upload(str(tmp_path), "a.jpg")
    assert result.outcome is TransferErrorKind.FILE_UNREADABLE


@pytest.mark.parametrize("key", ["", "/", "\\\\"])
async def test_empty_remote_key(service, make_record, key):
    record = await make_record(1)
    result = await service.executor.upload(record.local_path, key)
    assert result.status == "error: empty remote key"


async def test_remote_key_is_sanitized(service, make_record, fake_storage):
    record = await make_record(1)
    result = await service.executor.upload(record.local_path, "\\2024\\05\\photo.jpg")
    assert result.remote_key == "2024/05/photo.jpg"
    assert "2024/05/photo.jpg" in fake_storage.objects


async def test_delete_uses_sanitized_key(service, fake_storage):
    fake_storage.objects["x/y.jpg"] = b"1"
    result = await service.executor.delete("/x/y.jpg")
    assert result.ok
    assert result.remote_key == "x/y.jpg"
    assert fake_storage.objects == {}


async def test_delete_absent_object_succeeds(service):
    result = await service.executor.delete("nothing.jpg")
    assert result.ok
    assert result.status == "success: already absent"
    assert result.category is ErrorCategory.NOT_FOUND_AS_SUCCESS


async def test_delete_checks(service, configuration, fake_storage):
    denied = await service.executor.delete("a.jpg", actor=Actor.anonymous_admin_context())
    assert denied.status == "error: insufficient permissions"
    empty = await service.executor.delete("")
    assert empty.status == "error: empty remote key"
    configuration.update(enabled=False)
    disabled = await service.executor.delete("a.jpg")
    assert disabled.status == "error: not enabled or configured"
    assert fake_storage.requests == []


async def test_upload_completes_when_counter_store_is_down(
    uow_factory, configuration, storage_client, make_record, repository, fake_storage
):
    class DownStore:
        async def get(self, key):
            raise RedisConnectionError("Connection refused")

        async def set(self, key, value, ttl_seconds):
            raise RedisConnectionError("Connection refused")

    service = OffloadLifecycleService(
        uow_factory, configuration, storage_client, CounterThrottleGate(DownStore())
    )
    record = await make_record(1)

    result = await service.executor.upload(record.local_path, "photo_1.jpg", record_id=1)

    assert result.ok
    assert "photo_1.jpg" in fake_storage.objects
    assert repository.records[1].last_status == "success"
