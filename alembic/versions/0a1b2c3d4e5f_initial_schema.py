"""initial_schema

Markets, alert state + scan cursor, social signals and notification
subscribers.

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0a1b2c3d4e5f'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'markets',
        sa.Column('token_address', sa.String(42), primary_key=True),
        sa.Column('price_usd', sa.Numeric(), nullable=True),
        sa.Column('market_cap_usd', sa.Numeric(), nullable=True),
        sa.Column('liquidity_usd', sa.Numeric(), nullable=True),
        sa.Column('volume_24h_usd', sa.Numeric(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'token_alert_state',
        sa.Column('token_address', sa.String(42), primary_key=True),
        sa.Column('alerted_score_90', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('alerted_vol_1000', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'notify_cursor',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('last_seen_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'social_signals',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('cast_hash', sa.String(100), nullable=False, unique=True),
        sa.Column('cast_timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.Column('warpcast_url', sa.String(500), nullable=True),
        sa.Column('text', sa.Text(), nullable=True),
        sa.Column('author_fid', sa.Integer(), nullable=True),
        sa.Column('author_username', sa.String(100), nullable=True),
        sa.Column('author_display_name', sa.String(255), nullable=True),
        sa.Column('author_pfp_url', sa.String(1000), nullable=True),
        sa.Column('author_score', sa.Float(), nullable=True),
        sa.Column('tickers', postgresql.ARRAY(sa.String()), server_default='{}', nullable=False),
        sa.Column('contracts', postgresql.ARRAY(sa.String()), server_default='{}', nullable=False),
        sa.Column('raw', sa.JSON(), nullable=True),
    )
    op.create_index('social_signals_created_at_idx', 'social_signals', ['created_at'])
    op.create_index('social_signals_cast_timestamp_idx', 'social_signals', ['cast_timestamp'])
    op.create_index('social_signals_author_fid_idx', 'social_signals', ['author_fid'])

    op.create_table(
        'miniapp_notification_tokens',
        sa.Column('fid', sa.Integer(), primary_key=True),
        sa.Column('token', sa.String(255), primary_key=True),
        sa.Column('url', sa.String(1024), nullable=False),
        sa.Column('status', sa.String(20), server_default='enabled', nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_notification_tokens_status', 'miniapp_notification_tokens', ['status'])


def downgrade() -> None:
    op.drop_index('idx_notification_tokens_status', table_name='miniapp_notification_tokens')
    op.drop_table('miniapp_notification_tokens')
    op.drop_index('social_signals_author_fid_idx', table_name='social_signals')
    op.drop_index('social_signals_cast_timestamp_idx', table_name='social_signals')
    op.drop_index('social_signals_created_at_idx', table_name='social_signals')
    op.drop_table('social_signals')
    op.drop_table('notify_cursor')
    op.drop_table('token_alert_state')
    op.drop_table('markets')
