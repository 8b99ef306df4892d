"""Admission control port for concurrent uploads."""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class ThrottleGate(Protocol):
    """Soft cap on in-flight uploads.

    ``acquire`` returns False when the cap is reached. Every successful
    ``acquire`` must be paired with exactly one ``release``.
    """

    async def acquire(self) -> bool: ...

    async def release(self) -> None: ...

    async def current(self) -> int: ...


@runtime_checkable
class CounterStore(Protocol):
    """Key-value store holding integers with an absolute expiry."""

    async def get(self, key: str) -> Optional[int]: ...

    async def set(self, key: str, value: int, ttl_seconds: int) -> None: ...
