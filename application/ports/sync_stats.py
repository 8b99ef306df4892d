"""Persistence port for the most recent sync run."""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from application.dto import SyncReport


@runtime_checkable
class SyncStatsStore(Protocol):
    async def save(self, report: SyncReport) -> None: ...

    async def load(self) -> Optional[SyncReport]: ...
