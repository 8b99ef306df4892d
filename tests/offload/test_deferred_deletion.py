import os

import pytest

from domain.common.exceptions import DomainValidationException
from domain.offload import OffloadState


async def _uploaded(service, make_record, record_id=1, **kwargs):
    record = await make_record(record_id, **kwargs)
    result = await service.executor.upload(record.local_path, f"photo_{record_id}.jpg", record_id=record_id)
    assert result.ok
    return record


async def test_upload_only_marks_pending(service, make_record, repository):
    record = await _uploaded(service, make_record, derivatives=2)
    assert repository.records[1].state is OffloadState.PENDING_OFFLOAD
    assert os.path.exists(record.local_path)
    assert all(os.path.exists(p) for p in record.derivative_paths)


async def test_derivatives_complete_removes_local_files(service, make_record, repository):
    record = await _uploaded(service, make_record, derivatives=2)

    report = await service.on_derivative_generation_complete(1)

    assert report.primary_deleted
    assert report.derivatives_deleted == 2
    assert report.state is OffloadState.OFFLOADED
    assert not os.path.exists(record.local_path)
    assert not any(os.path.exists(p) for p in record.derivative_paths)
    stored = repository.records[1]
    assert stored.offloaded and not stored.pending_offload
    assert stored.offloaded_at is not None


async def test_reported_derivative_list_replaces_stored_one(service, make_record, repository, tmp_path):
    record = await _uploaded(service, make_record, derivatives=1)
    extra = tmp_path / "r1" / "photo-300x300.jpg"
    extra.write_bytes(b"t")

    report = await service.on_derivative_generation_complete(1, [str(extra)])

    assert report.derivatives_deleted == 1
    assert not extra.exists()
    # Not listed any more, so left alone
    assert os.path.exists(record.derivative_paths[0])
    assert repository.records[1].derivative_paths == [str(extra)]


async def test_reported_derivatives_outside_media_root_are_refused(service, make_record, repository, tmp_path):
    record = await _uploaded(service, make_record, derivatives=1)
    victim = tmp_path.parent / f"{tmp_path.name}-victim.txt"
    victim.write_bytes(b"keep")

    with pytest.raises(DomainValidationException) as exc:
        await service.on_derivative_generation_complete(1, [str(victim)])

    assert exc.value.field == "derivative_paths"
    assert victim.exists()
    assert os.path.exists(record.local_path)
    assert repository.records[1].state is OffloadState.PENDING_OFFLOAD
    assert repository.records[1].derivative_paths == record.derivative_paths


async def test_primary_delete_failure_keeps_everything(service, make_record, repository, tmp_path):
    record = await _uploaded(service, make_record, derivatives=2)
    # A directory at the primary path makes the removal fail
    os.remove(record.local_path)
    os.mkdir(record.local_path)

    report = await service.on_derivative_generation_complete(1)

    assert not report.primary_deleted
    assert report.state is OffloadState.PENDING_OFFLOAD
    assert all(os.path.exists(p) for p in record.derivative_paths)
    assert repository.records[1].state is OffloadState.PENDING_OFFLOAD


async def test_missing_primary_keeps_pending(service, make_record, repository):
    record = await _uploaded(service, make_record, derivatives=1)
    os.remove(record.local_path)

    report = await service.on_derivative_generation_complete(1)

    assert not report.primary_deleted
    assert os.path.exists(record.derivative_paths[0])
    assert repository.records[1].is_pending()


async def test_missing_derivative_is_skipped(service, make_record):
    record = await _uploaded(service, make_record, derivatives=2)
    os.remove(record.derivative_paths[0])

    report = await service.on_derivative_generation_complete(1)

    assert report.state is OffloadState.OFFLOADED
    assert report.derivatives_deleted == 1
    assert report.derivatives_failed == []


async def test_not_pending_record_is_left_alone(service, make_record, repository):
    record = await make_record(1, derivatives=1)

    report = await service.on_derivative_generation_complete(1)

    assert report.state is OffloadState.NOT_OFFLOADED
    assert not report.primary_deleted
    assert os.path.exists(record.local_path)


async def test_uploaded_without_deferral_is_left_alone(service, make_record, configuration):
    configuration.update(offload_after_upload_enabled=False)
    record = await _uploaded(service, make_record)

    report = await service.on_derivative_generation_complete(1)

    assert report.state is OffloadState.UPLOADED
    assert os.path.exists(record.local_path)


async def test_second_completion_is_a_no_op(service, make_record):
    await _uploaded(service, make_record)
    await service.on_derivative_generation_complete(1)

    report = await service.on_derivative_generation_complete(1)

    assert report.state is OffloadState.OFFLOADED
    assert not report.primary_deleted


async def test_unknown_record(service):
    report = await service.on_derivative_generation_complete(99)
    assert report.state is None
    assert not report.primary_deleted
