"""initial schema

Revision ID: 5b1e0c7a9d42
Revises:
Create Date: 2026-10-18 09:12:44.518203

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5b1e0c7a9d42"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create feed, connection, failure, schedule and delivery tables."""
    op.create_table(
        "feed",
        sa.Column("id", sa.String(length=24), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("guild", sa.String(length=32), nullable=False),
        sa.Column("channel", sa.String(length=32), nullable=False),
        sa.Column("text", sa.Text(), nullable=True),
        sa.Column("webhook", sa.JSON(), nullable=True),
        sa.Column("format_tables", sa.Boolean(), nullable=False),
        sa.Column("img_links_existence", sa.Boolean(), nullable=False),
        sa.Column("img_previews", sa.Boolean(), nullable=False),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_feed_url", "feed", ["url"])
    op.create_index("ix_feed_guild", "feed", ["guild"])

    op.create_table(
        "feed_connection",
        sa.Column("seq", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("id", sa.String(length=24), nullable=False),
        sa.Column("feed_id", sa.String(length=24), nullable=False),
        sa.Column("connection_type", sa.String(length=32), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("filters", sa.JSON(), nullable=True),
        sa.Column("channel_id", sa.String(length=32), nullable=True),
        sa.Column("webhook", sa.JSON(), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("embeds", sa.JSON(), nullable=False),
        sa.Column("format_options", sa.JSON(), nullable=True),
        sa.Column("custom_placeholders", sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(["feed_id"], ["feed.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("seq"),
        sa.UniqueConstraint("id"),
    )
    op.create_index("ix_feed_connection_feed_id", "feed_connection", ["feed_id"])

    op.create_table(
        "fail_record",
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("alerted", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("url"),
    )

    op.create_table(
        "feed_schedule",
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("keywords", sa.JSON(), nullable=False),
        sa.Column("feed_ids", sa.JSON(), nullable=False),
        sa.Column("refresh_rate_minutes", sa.Float(), nullable=False),
        sa.CheckConstraint(
            "refresh_rate_minutes > 0", name="ck_feed_schedule_refresh_rate_positive"
        ),
        sa.PrimaryKeyConstraint("name"),
    )

    op.create_table(
        "delivery_record",
        sa.Column(
            "id",
            sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
            autoincrement=True,
            nullable=False,
        ),
        sa.Column("feed_id", sa.String(length=24), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("error_code", sa.String(length=64), nullable=True),
        sa.Column("internal_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_delivery_record_feed_id", "delivery_record", ["feed_id"])
    op.create_index("ix_delivery_record_created_at", "delivery_record", ["created_at"])


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_index("ix_delivery_record_created_at", table_name="delivery_record")
    op.drop_index("ix_delivery_record_feed_id", table_name="delivery_record")
    op.drop_table("delivery_record")
    op.drop_table("feed_schedule")
    op.drop_table("fail_record")
    op.drop_index("ix_feed_connection_feed_id", table_name="feed_connection")
    op.drop_table("feed_connection")
    op.drop_index("ix_feed_guild", table_name="feed")
    op.drop_index("ix_feed_url", table_name="feed")
    op.drop_table("feed")
