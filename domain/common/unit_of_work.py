"""Unit of Work 抽象定义"""
from __future__ import annotations

from abc import ABC, abstractmethod

from domain.offload.repository import OffloadRecordRepository


class AbstractUnitOfWork(ABC):
    """卸载记录的事务边界。

    ``async with`` 块正常结束时自动提交（只读模式除外），抛出异常时回滚。
    每个块只读写一条记录，跨网络传输的等待不放在事务内。
    """

    offload_repository: OffloadRecordRepository

    def __init__(self, *, readonly: bool = False) -> None:
        self._committed = False
        self._readonly = readonly
        self.offload_repository = None  # type: ignore[assignment]

    @property
    def readonly(self) -> bool:
        return self._readonly

    async def __aenter__(self) -> "AbstractUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc:
            await self.rollback()
        elif not self._readonly and not self._committed:
            await self.commit()

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...
