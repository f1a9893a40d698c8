"""create tenants and sync_state

Revision ID: 0001_create_tenants_and_sync_state
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_create_tenants_and_sync_state'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_email', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=255), nullable=True),
        sa.Column('last_name', sa.String(length=255), nullable=True),
        sa.Column('tenant_phone', sa.JSON(), nullable=True),
        sa.Column('rental_address', sa.String(length=500), nullable=True),
        sa.Column('unit_number', sa.String(length=50), nullable=True),
        sa.Column('unit_owner', sa.String(length=255), nullable=True),
        sa.Column('owner_phone', sa.JSON(), nullable=True),
        sa.Column('check_in_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=True),
        sa.Column('confirmation_number', sa.String(length=100), nullable=True),
        sa.Column('rent', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('last_scraped_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_tenants_id', 'tenants', ['id'])
    op.create_index('ix_tenants_tenant_email', 'tenants', ['tenant_email'])
    op.create_index('ix_tenants_created_at', 'tenants', ['created_at'])
    op.create_index('ix_tenants_last_scraped_at', 'tenants', ['last_scraped_at'])

    # One watermark row per sync job
    op.create_table(
        'sync_state',
        sa.Column('id', sa.String(length=100), primary_key=True),
        sa.Column('last_run_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('synced_rows', sa.JSON(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table('sync_state')
    op.drop_index('ix_tenants_last_scraped_at', table_name='tenants')
    op.drop_index('ix_tenants_created_at', table_name='tenants')
    op.drop_index('ix_tenants_tenant_email', table_name='tenants')
    op.drop_index('ix_tenants_id', table_name='tenants')
    op.drop_table('tenants')
