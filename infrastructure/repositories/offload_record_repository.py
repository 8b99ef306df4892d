"""SQLAlchemy-backed repository for offload records."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.common.exceptions import OffloadRecordAlreadyExistsException, OffloadRecordNotFoundException
from domain.offload import OffloadRecord, OffloadRecordRepository
from infrastructure.models.offload_record import OffloadRecordModel


class SQLAlchemyOffloadRecordRepository(OffloadRecordRepository):
    """Persist offload record aggregates using SQLAlchemy ORM."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: OffloadRecordModel) -> OffloadRecord:
        return OffloadRecord(
            record_id=model.record_id,
            local_path=model.local_path,
            derivative_paths=list(model.derivative_paths or []),
            attempt_count=model.attempt_count or 0,
            last_status=model.last_status,
            last_status_at=model.last_status_at,
            cdn_url=model.cdn_url,
            remote_key=model.remote_key,
            uploaded_at=model.uploaded_at,
            pending_offload=bool(model.pending_offload),
            offloaded=bool(model.offloaded),
            offloaded_at=model.offloaded_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _apply(model: OffloadRecordModel, record: OffloadRecord) -> None:
        model.local_path = record.local_path
        model.derivative_paths = list(record.derivative_paths)
        model.attempt_count = record.attempt_count
        model.last_status = record.last_status
        model.last_status_at = record.last_status_at
        model.cdn_url = record.cdn_url
        model.remote_key = record.remote_key
        model.uploaded_at = record.uploaded_at
        model.pending_offload = record.pending_offload
        model.offloaded = record.offloaded
        model.offloaded_at = record.offloaded_at
        if record.created_at is not None:
            model.created_at = record.created_at
        if record.updated_at is not None:
            model.updated_at = record.updated_at

    async def _get_model(self, record_id: int) -> Optional[OffloadRecordModel]:
        result = await self.session.execute(
            select(OffloadRecordModel).where(OffloadRecordModel.record_id == record_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _without_cdn_url():
        return or_(OffloadRecordModel.cdn_url.is_(None), OffloadRecordModel.cdn_url == "")

    async def create(self, record: OffloadRecord) -> OffloadRecord:
        if await self._get_model(record.record_id) is not None:
            raise OffloadRecordAlreadyExistsException(record.record_id)
        model = OffloadRecordModel(record_id=record.record_id)
        self._apply(model, record)
        self.session.add(model)
        await self.session.flush()
        await self.session.refresh(model)
        return self._to_entity(model)

    async def update(self, record: OffloadRecord) -> OffloadRecord:
        model = await self._get_model(record.record_id)
        if model is None:
            raise OffloadRecordNotFoundException(record.record_id)
        self._apply(model, record)
        await self.session.flush()
        await self.session.refresh(model)
        return self._to_entity(model)

    async def delete(self, record_id: int) -> None:
        model = await self._get_model(record_id)
        if model is None:
            return
        await self.session.delete(model)
        await self.session.flush()

    async def get_by_id(self, record_id: int) -> Optional[OffloadRecord]:
        model = await self._get_model(record_id)
        return self._to_entity(model) if model else None

    async def list_without_cdn_url(self, *, limit: int = 25) -> list[OffloadRecord]:
        query = (
            select(OffloadRecordModel)
            .where(self._without_cdn_url())
            .order_by(OffloadRecordModel.created_at.desc(), OffloadRecordModel.record_id.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def count_without_cdn_url(self) -> int:
        query = select(func.count()).select_from(OffloadRecordModel).where(self._without_cdn_url())
        result = await self.session.execute(query)
        return int(result.scalar() or 0)

    async def count_offloaded(self) -> int:
        query = (
            select(func.count())
            .select_from(OffloadRecordModel)
            .where(OffloadRecordModel.offloaded.is_(True))
        )
        result = await self.session.execute(query)
        return int(result.scalar() or 0)
