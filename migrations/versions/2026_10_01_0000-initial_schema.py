"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-01 00:00:00.000000

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
    Create the tables used by click attribution:
    - affiliate_links: directory entries (status, destination, click counter)
    - click_events: one row per recorded click
    """
    bind = op.get_bind()
    existing_tables = inspect(bind).get_table_names()

    if 'affiliate_links' not in existing_tables:
        op.create_table(
            'affiliate_links',
            sa.Column('id', sa.Uuid(), nullable=False),
            sa.Column('title', sa.String(length=200), nullable=False),
            sa.Column('url', sa.Text(), nullable=False),
            sa.Column('affiliate_url', sa.Text(), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
            sa.Column('click_count', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint('id'),
            sa.CheckConstraint(
                "status IN ('active', 'inactive', 'pending')",
                name='ck_affiliate_links_status'
            ),
        )
        op.create_index('ix_affiliate_links_status', 'affiliate_links', ['status'])
        op.create_index('ix_affiliate_links_click_count', 'affiliate_links', ['click_count'])
        op.create_index('ix_affiliate_links_created_at', 'affiliate_links', ['created_at'])

    if 'click_events' not in existing_tables:
        # Declared inline: SQLite cannot add a foreign key to an existing table
        op.create_table(
            'click_events',
            sa.Column('id', sa.Uuid(), nullable=False),
            sa.Column('link_id', sa.Uuid(), nullable=False),
            sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
            sa.Column('user_agent', sa.Text(), nullable=True),
            sa.Column('referrer', sa.Text(), nullable=True),
            sa.Column('ip_address', sa.String(length=45), nullable=False),
            sa.Column('session_id', sa.String(length=255), nullable=False),
            sa.Column('country_code', sa.String(length=2), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(
                ['link_id'],
                ['affiliate_links.id'],
                name='fk_click_events_link_id',
                ondelete='CASCADE'
            ),
        )
        op.create_index('ix_click_events_link_id', 'click_events', ['link_id'])
        op.create_index('ix_click_events_timestamp', 'click_events', ['timestamp'])
        op.create_index('ix_click_events_session_id', 'click_events', ['session_id'])


def downgrade() -> None:
    """Drop click_events, then affiliate_links."""
    op.drop_index('ix_click_events_session_id', table_name='click_events')
    op.drop_index('ix_click_events_timestamp', table_name='click_events')
    op.drop_index('ix_click_events_link_id', table_name='click_events')
    op.drop_table('click_events')

    op.drop_index('ix_affiliate_links_created_at', table_name='affiliate_links')
    op.drop_index('ix_affiliate_links_click_count', table_name='affiliate_links')
    op.drop_index('ix_affiliate_links_status', table_name='affiliate_links')
    op.drop_table('affiliate_links')
