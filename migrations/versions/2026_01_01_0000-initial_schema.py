"""Initial schema

Revision ID: 001_initial
Revises: 
Create Date: 2026-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create initial database schema:
    - short_links table: Stores short code to target URL mappings
    - click_events table: Stores the bounded click history per link
    """
    bind = op.get_bind()
    inspector = inspect(bind)
    existing_tables = inspector.get_table_names()

    if 'short_links' not in existing_tables:
        op.create_table(
            'short_links',
            sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
            sa.Column('code', sa.String(length=20), nullable=False),
            sa.Column('target_url', sa.Text(), nullable=False),
            sa.Column('custom_alias', sa.String(length=20), nullable=True),
            sa.Column('owner_id', sa.String(length=128), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('click_count', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('last_accessed', sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )

        op.create_index('ix_short_links_code', 'short_links', ['code'], unique=True)
        op.create_index('ix_short_links_code_active', 'short_links', ['code', 'active'])
        op.create_index('ix_short_links_target_url', 'short_links', ['target_url'])
        op.create_index('ix_short_links_custom_alias', 'short_links', ['custom_alias'])
        op.create_index('ix_short_links_owner_id', 'short_links', ['owner_id'])
        op.create_index('ix_short_links_created_at', 'short_links', ['created_at'])
        op.create_index('ix_short_links_expires_at', 'short_links', ['expires_at'])
        op.create_index('ix_short_links_click_count', 'short_links', ['click_count'])

    if 'click_events' not in existing_tables:
        op.create_table(
            'click_events',
            sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
            sa.Column('link_id', sa.Integer(), nullable=False),
            sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
            sa.Column('ip_address', sa.String(length=45), nullable=True),
            sa.Column('user_agent', sa.String(length=512), nullable=True),
            sa.Column('referer', sa.Text(), nullable=False, server_default='direct'),
            sa.Column('browser', sa.String(length=64), nullable=True),
            sa.Column('os', sa.String(length=64), nullable=True),
            sa.Column('device_class', sa.String(length=16), nullable=True),
            sa.Column('browser_version', sa.String(length=32), nullable=True),
            sa.Column('os_version', sa.String(length=32), nullable=True),
            sa.Column('device_model', sa.String(length=128), nullable=True),
            sa.Column('country', sa.String(length=8), nullable=True),
            sa.Column('region', sa.String(length=16), nullable=True),
            sa.ForeignKeyConstraint(['link_id'], ['short_links.id']),
            sa.PrimaryKeyConstraint('id')
        )

        op.create_index('ix_click_events_link_id', 'click_events', ['link_id'])
        op.create_index('ix_click_events_timestamp', 'click_events', ['timestamp'])


def downgrade() -> None:
    """
    Drop all tables and indexes.
    """
    op.drop_index('ix_click_events_timestamp', table_name='click_events')
    op.drop_index('ix_click_events_link_id', table_name='click_events')
    op.drop_table('click_events')

    for index_name in (
        'ix_short_links_click_count',
        'ix_short_links_expires_at',
        'ix_short_links_created_at',
        'ix_short_links_owner_id',
        'ix_short_links_custom_alias',
        'ix_short_links_target_url',
        'ix_short_links_code_active',
        'ix_short_links_code',
    ):
        op.drop_index(index_name, table_name='short_links')
    op.drop_table('short_links')
