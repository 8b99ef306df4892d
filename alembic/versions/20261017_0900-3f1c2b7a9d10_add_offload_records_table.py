"""add_offload_records_table

Revision ID: 3f1c2b7a9d10
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f1c2b7a9d10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'offload_records',
        sa.Column('record_id', sa.Integer(), autoincrement=False, nullable=False, comment='宿主对象记录ID'),
        sa.Column('local_path', sa.String(length=1024), nullable=False, comment='本地主文件绝对路径'),
        sa.Column('derivative_paths', sa.JSON(), nullable=False, comment='本地衍生文件路径列表（JSON）'),
        sa.Column('attempt_count', sa.Integer(), nullable=False, server_default='0', comment='上传尝试次数'),
        sa.Column('last_status', sa.String(length=255), nullable=True, comment='最近一次上传状态：success / error: <原因>'),
        sa.Column('last_status_at', sa.DateTime(timezone=True), nullable=True, comment='最近一次状态时间'),
        sa.Column('cdn_url', sa.String(length=1024), nullable=True, comment='CDN公共URL'),
        sa.Column('remote_key', sa.String(length=1024), nullable=True, comment='远端存储Key'),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=True, comment='上传成功时间'),
        sa.Column('pending_offload', sa.Boolean(), nullable=False, server_default='false', comment='等待衍生文件生成完成后删除本地文件'),
        sa.Column('offloaded', sa.Boolean(), nullable=False, server_default='false', comment='本地文件是否已删除'),
        sa.Column('offloaded_at', sa.DateTime(timezone=True), nullable=True, comment='本地文件删除时间'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='更新时间'),
        sa.PrimaryKeyConstraint('record_id', name=op.f('pk_offload_records')),
        comment='远端卸载状态表，记录对象的CDN位置与本地文件清理进度'
    )

    op.create_index('ix_offload_records_created_at', 'offload_records', ['created_at'], unique=False)
    op.create_index('ix_offload_records_cdn_url', 'offload_records', ['cdn_url'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_offload_records_cdn_url', table_name='offload_records')
    op.drop_index('ix_offload_records_created_at', table_name='offload_records')
    op.drop_table('offload_records')
