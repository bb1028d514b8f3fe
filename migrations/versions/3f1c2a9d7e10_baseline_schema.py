"""baseline schema: api cache, tracking, episode mirror

Revision ID: 3f1c2a9d7e10
Revises:
Create Date: 2026-10-12 20:15:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'api_cache',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('cache_key', sa.String(32), nullable=False),
        sa.Column('request_path', sa.String(2000), nullable=False),
        sa.Column('cache_type', sa.String(40), nullable=False),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('first_seen_at', sa.DateTime(), nullable=False),
        sa.Column('last_updated_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('cache_key'),
    )
    op.create_index('ix_api_cache_cache_type', 'api_cache', ['cache_type'])
    op.create_index('ix_api_cache_expires_at', 'api_cache', ['expires_at'])

    op.create_table(
        'tracked_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('title_id', sa.Integer(), nullable=False),
        sa.Column('title_name', sa.String(255), nullable=False),
        sa.Column('total_episodes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_seasons', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('item_type', sa.Enum('TV', 'MOVIE', name='itemtype'), nullable=False),
        sa.Column('release_date', sa.Date(), nullable=True),
        sa.Column('is_watched', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('end_year', sa.Integer(), nullable=True),
        sa.Column('tracked_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'title_id', name='uq_tracked_user_title'),
    )
    op.create_index('ix_tracked_items_user_id', 'tracked_items', ['user_id'])
    op.create_index('ix_tracked_items_title_id', 'tracked_items', ['title_id'])
    op.create_index('ix_tracked_items_item_type', 'tracked_items', ['item_type'])

    op.create_table(
        'episodes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title_id', sa.Integer(), nullable=False),
        sa.Column('episode_id', sa.Integer(), nullable=False),
        sa.Column('season_number', sa.Integer(), nullable=False),
        sa.Column('episode_number', sa.Integer(), nullable=False),
        sa.Column('episode_name', sa.String(500), nullable=False),
        sa.Column('air_date', sa.Date(), nullable=True),
        sa.Column('overview', sa.Text(), nullable=True),
        sa.Column('thumbnail_url', sa.String(1000), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('title_id', 'episode_id', name='uq_episode_title_ext'),
    )
    op.create_index('ix_episodes_title_id', 'episodes', ['title_id'])
    op.create_index('ix_episodes_air_date', 'episodes', ['air_date'])
    op.create_index('ix_episode_title_season', 'episodes', ['title_id', 'season_number'])

    op.create_table(
        'episode_sources',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title_id', sa.Integer(), nullable=False),
        sa.Column('episode_id', sa.Integer(), nullable=False),
        sa.Column('source_id', sa.Integer(), nullable=False),
        sa.Column('region', sa.String(8), nullable=False),
        sa.Column('web_url', sa.String(2000), nullable=False),
    )
    op.create_index('ix_episode_sources_source_id', 'episode_sources', ['source_id'])
    op.create_index('ix_source_title_episode', 'episode_sources', ['title_id', 'episode_id'])

    op.create_table(
        'watched_episodes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('title_id', sa.Integer(), nullable=False),
        sa.Column('episode_id', sa.Integer(), nullable=False),
        sa.Column('watched_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'title_id', 'episode_id', name='uq_watch_user_title_episode'),
    )
    op.create_index('ix_watched_episodes_user_id', 'watched_episodes', ['user_id'])
    op.create_index('ix_watched_episodes_title_id', 'watched_episodes', ['title_id'])

    op.create_table(
        'sources',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('source_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('type', sa.String(40), nullable=True),
        sa.Column('logo_url', sa.String(1000), nullable=True),
        sa.Column('regions', sa.JSON(), nullable=True),
        sa.UniqueConstraint('source_id'),
    )


def downgrade() -> None:
    for table in ('sources', 'watched_episodes', 'episode_sources', 'episodes',
                  'tracked_items', 'api_cache'):
        op.drop_table(table)
