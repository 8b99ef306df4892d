from application.dto import RemoteCleanup


async def _uploaded(service, make_record, record_id=1):
    record = await make_record(record_id)
    await service.executor.upload(record.local_path, f"2024/photo_{record_id}.jpg", record_id=record_id)
    return record


async def test_destroying_uploaded_record_deletes_remote_object(service, make_record, repository, fake_storage):
    await _uploaded(service, make_record)
    assert "2024/photo_1.jpg" in fake_storage.objects

    result = await service.on_record_destroyed(1)

    assert result.remote_cleanup is RemoteCleanup.DELETED
    assert result.remote_key == "2024/photo_1.jpg"
    assert result.status == "success"
    assert fake_storage.objects == {}
    assert 1 not in repository.records


async def test_object_already_gone_remotely_counts_as_deleted(service, make_record, repository, fake_storage):
    await _uploaded(service, make_record)
    fake_storage.objects.clear()

    result = await service.on_record_destroyed(1)

    assert result.remote_cleanup is RemoteCleanup.DELETED
    assert result.status == "success: already absent"
    assert 1 not in repository.records


async def test_record_without_cdn_url_is_skipped(service, make_record, repository, fake_storage):
    await make_record(1)

    result = await service.on_record_destroyed(1)

    assert result.remote_cleanup is RemoteCleanup.SKIPPED
    assert fake_storage.requests == []
    assert 1 not in repository.records


async def test_unknown_record_is_skipped(service):
    result = await service.on_record_destroyed(42)
    assert result.remote_cleanup is RemoteCleanup.SKIPPED


async def test_disabled_integration_leaves_remote_object(service, make_record, repository, configuration, fake_storage):
    await _uploaded(service, make_record)
    configuration.update(enabled=False)
    requests_before = len(fake_storage.requests)

    result = await service.on_record_destroyed(1)

    assert result.remote_cleanup is RemoteCleanup.DISABLED
    assert len(fake_storage.requests) == requests_before
    assert 1 in repository.records


async def test_unparsable_cdn_url(service, make_record, repository, fake_storage):
    await make_record(1, cdn_url="https://myzone.b-cdn.net/")

    result = await service.on_record_destroyed(1)

    assert result.remote_cleanup is RemoteCleanup.UNPARSABLE_URL
    assert fake_storage.requests == []
    assert 1 in repository.records


async def test_remote_failure_keeps_record(service, make_record, repository, fake_storage):
    await _uploaded(service, make_record)
    fake_storage.delete_status = 401

    result = await service.on_record_destroyed(1)

    assert result.remote_cleanup is RemoteCleanup.FAILED
    assert result.status == "error: unauthorized"
    assert repository.records[1].cdn_url is not None
