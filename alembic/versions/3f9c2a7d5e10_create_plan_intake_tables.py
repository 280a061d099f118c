"""create_plan_intake_tables

Revision ID: 3f9c2a7d5e10
Revises:
Create Date: 2026-10-18 09:12:44.118305

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f9c2a7d5e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'practices',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('owner_id', sa.String(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_practices_owner_id', 'practices', ['owner_id'])

    op.create_table(
        'practice_members',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('practice_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('practices.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.UniqueConstraint('user_id', name='uq_practice_members_user_id'),
        sa.CheckConstraint("role IN ('owner', 'member')", name='ck_practice_members_role'),
    )
    op.create_index('ix_practice_members_practice_user', 'practice_members', ['practice_id', 'user_id'])

    op.create_table(
        'documents',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('practice_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('practices.id', ondelete='CASCADE'), nullable=False),
        sa.Column('storage_ref', sa.String(), nullable=False, comment='Object path inside the storage bucket'),
        sa.Column('filename', sa.String(), nullable=False),
        sa.Column('content_type', sa.String(), nullable=False),
        sa.Column('size_bytes', sa.BigInteger(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('uploaded_by', sa.String(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint(
            "status IN ('uploaded', 'queued', 'processing', 'complete', 'error')",
            name='ck_documents_status',
        ),
    )
    op.create_index('ix_documents_practice_created', 'documents', ['practice_id', 'created_at'])
    op.create_index('ix_documents_practice_status', 'documents', ['practice_id', 'status'])

    op.create_table(
        'analyses',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('document_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('documents.id', ondelete='CASCADE'), nullable=False),
        sa.Column('practice_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('practices.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('report', postgresql.JSONB(astext_type=sa.Text()), nullable=True, comment='Structured plan report, set iff status = complete'),
        sa.Column('error_message', sa.Text(), nullable=True, comment='Failure reason, set iff status = error'),
        sa.Column('workflow_id', sa.String(), nullable=True, comment='Temporal workflow running the extraction'),
        sa.Column('created_by', sa.String(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint("status IN ('queued', 'processing', 'complete', 'error')", name='ck_analyses_status'),
        sa.CheckConstraint("(status = 'complete') = (report IS NOT NULL)", name='ck_analyses_report_iff_complete'),
        sa.CheckConstraint("(status = 'error') = (error_message IS NOT NULL)", name='ck_analyses_error_iff_error'),
    )
    op.create_index('ix_analyses_document_created', 'analyses', ['document_id', 'created_at'])
    op.create_index('ix_analyses_practice_id', 'analyses', ['practice_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_analyses_practice_id', table_name='analyses')
    op.drop_index('ix_analyses_document_created', table_name='analyses')
    op.drop_table('analyses')
    op.drop_index('ix_documents_practice_status', table_name='documents')
    op.drop_index('ix_documents_practice_created', table_name='documents')
    op.drop_table('documents')
    op.drop_index('ix_practice_members_practice_user', table_name='practice_members')
    op.drop_table('practice_members')
    op.drop_index('ix_practices_owner_id', table_name='practices')
    op.drop_table('practices')
