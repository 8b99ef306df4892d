"""Offload record database model definitions."""
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    JSON,
    String,
    text,
)
from sqlalchemy.sql import func

from .base import Base


class OffloadRecordModel(Base):
    """ORM mapping for offload_records table."""

    __tablename__ = "offload_records"
    __table_args__ = (
        Index("ix_offload_records_created_at", "created_at"),
        Index("ix_offload_records_cdn_url", "cdn_url"),
        {
            "comment": "远端卸载状态表，记录对象的CDN位置与本地文件清理进度",
        },
    )

    record_id = Column(
        Integer,
        primary_key=True,
        autoincrement=False,
        comment="宿主对象记录ID",
    )
    local_path = Column(
        String(1024),
        nullable=False,
        comment="本地主文件绝对路径",
    )
    derivative_paths = Column(
        JSON,
        nullable=False,
        default=list,
        comment="本地衍生文件路径列表（JSON）",
    )
    attempt_count = Column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="上传尝试次数",
    )
    last_status = Column(
        String(255),
        nullable=True,
        comment="最近一次上传状态：success / error: <原因>",
    )
    last_status_at = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="最近一次状态时间",
    )
    cdn_url = Column(
        String(1024),
        nullable=True,
        comment="CDN公共URL",
    )
    remote_key = Column(
        String(1024),
        nullable=True,
        comment="远端存储Key",
    )
    uploaded_at = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="上传成功时间",
    )
    pending_offload = Column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
        comment="等待衍生文件生成完成后删除本地文件",
    )
    offloaded = Column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
        comment="本地文件是否已删除",
    )
    offloaded_at = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="本地文件删除时间",
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        comment="创建时间",
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        onupdate=func.now(),
        comment="更新时间",
    )

    def __repr__(self) -> str:
        return (
            "<OffloadRecordModel(record_id={record_id}, cdn_url='{cdn_url}', "
            "pending_offload={pending}, offloaded={offloaded})>"
        ).format(
            record_id=self.record_id,
            cdn_url=self.cdn_url,
            pending=self.pending_offload,
            offloaded=self.offloaded,
        )
