import httpx
from sqlalchemy import event
from sqlalchemy.pool import NullPool

from infrastructure import offload_runtime
from infrastructure.cache import InMemoryCounterStore
from infrastructure.offload_runtime import build_gate, offload_service_scope


async def test_scope_builds_a_working_service():
    transport = httpx.MockTransport(lambda request: httpx.Response(500))
    async with offload_service_scope(transport=transport) as service:
        view = service.settings_view()
        report = await service.sync_pending()

    # Defaults ship disabled and unconfigured
    assert view.enabled is False
    assert view.configured is False
    assert report.skipped_reason == "integration disabled or not configured"


async def test_scope_disposes_its_own_pool_less_engine(monkeypatch):
    create_engine = offload_runtime.create_scoped_engine
    engines = []
    disposed = []

    def recording_engine():
        engine = create_engine()
        event.listen(engine.sync_engine, "engine_disposed", lambda e: disposed.append(e))
        engines.append(engine)
        return engine

    monkeypatch.setattr(offload_runtime, "create_scoped_engine", recording_engine)

    transport = httpx.MockTransport(lambda request: httpx.Response(500))
    async with offload_service_scope(transport=transport) as service:
        async with service._uow_factory(readonly=True) as uow:
            assert uow.session.bind is engines[0]

    assert isinstance(engines[0].sync_engine.pool, NullPool)
    assert disposed == [engines[0].sync_engine]


async def test_gate_follows_configured_limits(configuration, clock):
    configuration.update(max_concurrent_uploads=1)
    gate = build_gate(InMemoryCounterStore(clock=clock), configuration)
    assert await gate.acquire() is True
    assert await gate.acquire() is False
