from redis.exceptions import ConnectionError as RedisConnectionError

from infrastructure.cache import ACTIVE_UPLOADS_KEY, CounterThrottleGate, InMemoryCounterStore


async def test_admits_up_to_max_then_denies(gate):
    assert [await gate.acquire() for _ in range(3)] == [True, True, True]
    assert await gate.acquire() is False
    assert await gate.current() == 3


async def test_release_frees_a_slot(gate):
    for _ in range(3):
        await gate.acquire()
    await gate.release()
    assert await gate.current() == 2
    assert await gate.acquire() is True


async def test_release_never_goes_negative(gate, counter_store):
    await gate.release()
    assert await gate.current() == 0
    assert await counter_store.get(ACTIVE_UPLOADS_KEY) is None


async def test_leaked_counter_expires_after_ttl(gate, clock):
    for _ in range(3):
        await gate.acquire()
    assert await gate.acquire() is False

    clock.advance(299)
    assert await gate.acquire() is False

    clock.advance(2)
    assert await gate.current() == 0
    assert await gate.acquire() is True


async def test_each_write_rearms_expiry(gate, clock):
    await gate.acquire()
    clock.advance(200)
    await gate.acquire()
    clock.advance(200)
    assert await gate.current() == 2


async def test_custom_limit_and_key(clock):
    store = InMemoryCounterStore(clock=clock)
    gate = CounterThrottleGate(store, max_concurrent=1, ttl_seconds=10, key="uploads:test")
    assert await gate.acquire() is True
    assert await gate.acquire() is False
    assert await store.get("uploads:test") == 1
    assert await store.get(ACTIVE_UPLOADS_KEY) is None


class UnreachableCounterStore:
    def __init__(self):
        self.calls = 0

    async def get(self, key):
        self.calls += 1
        raise RedisConnectionError("Error 111 connecting to redis:6379. Connection refused.")

    async def set(self, key, value, ttl_seconds):
        self.calls += 1
        raise RedisConnectionError("Error 111 connecting to redis:6379. Connection refused.")


async def test_unreachable_store_lets_uploads_through():
    store = UnreachableCounterStore()
    gate = CounterThrottleGate(store, max_concurrent=1)

    assert await gate.acquire() is True
    assert await gate.acquire() is True
    assert await gate.current() == 0
    await gate.release()
    assert store.calls > 0
