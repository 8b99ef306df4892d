"""Repository abstraction for offload records."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from .entity import OffloadRecord


class OffloadRecordRepository(ABC):
    """Contract for persisting and querying offload records."""

    @abstractmethod
    async def create(self, record: OffloadRecord) -> OffloadRecord:
        ...

    @abstractmethod
    async def update(self, record: OffloadRecord) -> OffloadRecord:
        ...

    @abstractmethod
    async def delete(self, record_id: int) -> None:
        ...

    @abstractmethod
    async def get_by_id(self, record_id: int) -> Optional[OffloadRecord]:
        ...

    @abstractmethod
    async def list_without_cdn_url(self, *, limit: int = 25) -> list[OffloadRecord]:
        """Records never uploaded, newest first."""
        ...

    @abstractmethod
    async def count_without_cdn_url(self) -> int:
        ...

    @abstractmethod
    async def count_offloaded(self) -> int:
        ...
