"""initial schema

Revision ID: 5c1e2a7d9b40
Revises:
Create Date: 2026-10-19 09:12:41.512310

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e2a7d9b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create accounts, connections, post groups, posts and media."""
    op.create_table(
        "account",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("subscription_active", sa.Boolean(), nullable=False),
        sa.Column("monthly_post_limit", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "api_key",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("key_hash", sa.String(length=64), nullable=False),
        sa.Column("label", sa.Text(), nullable=True),
        sa.Column("revoked", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["account.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key_hash"),
    )
    op.create_index("ix_api_key_account_id", "api_key", ["account_id"])

    op.create_table(
        "workspace_user",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["account.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workspace_user_account_id", "workspace_user", ["account_id"])

    op.create_table(
        "platform_connection",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("workspace_user_id", sa.String(length=32), nullable=True),
        sa.Column("platform", sa.String(length=24), nullable=False),
        sa.Column("external_id", sa.String(length=255), nullable=False),
        sa.Column("platform_id", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=True),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("profile_image_url", sa.Text(), nullable=True),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("access_token_expires_at", sa.DateTime(), nullable=True),
        sa.Column("extra", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["account.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["workspace_user_id"], ["workspace_user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("account_id", "platform_id"),
    )
    op.create_index("ix_platform_connection_account_id", "platform_connection", ["account_id"])
    op.create_index(
        "ix_platform_connection_workspace_user_id", "platform_connection", ["workspace_user_id"]
    )
    op.create_index("ix_platform_connection_platform_id", "platform_connection", ["platform_id"])

    op.create_table(
        "post_group",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("workspace_user_id", sa.String(length=32), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("platforms", sa.JSON(), nullable=False),
        sa.Column("platform_settings", sa.JSON(), nullable=False),
        sa.Column("scheduled_time", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(length=24), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("processing_started_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["account.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["workspace_user_id"], ["workspace_user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_post_group_account_id", "post_group", ["account_id"])
    op.create_index("ix_post_group_workspace_user_id", "post_group", ["workspace_user_id"])
    op.create_index("ix_post_group_scheduled_time", "post_group", ["scheduled_time"])
    op.create_index("ix_post_group_status", "post_group", ["status"])

    op.create_table(
        "platform_post",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("post_group_id", sa.String(length=32), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("platform", sa.String(length=24), nullable=False),
        sa.Column("platform_id", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=24), nullable=False),
        sa.Column("posted_id", sa.String(length=255), nullable=True),
        sa.Column("published_url", sa.Text(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["post_group_id"], ["post_group.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("post_group_id", "platform_id"),
    )
    op.create_index("ix_platform_post_post_group_id", "platform_post", ["post_group_id"])

    op.create_table(
        "media_asset",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("post_group_id", sa.String(length=32), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("content_type", sa.String(length=127), nullable=False),
        sa.Column("object_key", sa.Text(), nullable=False),
        sa.Column("file_url", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["post_group_id"], ["post_group.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("object_key"),
    )
    op.create_index("ix_media_asset_post_group_id", "media_asset", ["post_group_id"])

    # Append-only; rows outlive their post groups.
    op.create_table(
        "post_group_id_registry",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("issued_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_post_group_id_registry_account_id", "post_group_id_registry", ["account_id"])

    op.create_table(
        "post_group_transition",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("post_group_id", sa.String(length=32), nullable=False),
        sa.Column("transition", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("post_group_id", "transition"),
    )


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_table("post_group_transition")
    op.drop_index("ix_post_group_id_registry_account_id", table_name="post_group_id_registry")
    op.drop_table("post_group_id_registry")
    op.drop_index("ix_media_asset_post_group_id", table_name="media_asset")
    op.drop_table("media_asset")
    op.drop_index("ix_platform_post_post_group_id", table_name="platform_post")
    op.drop_table("platform_post")
    for index in (
        "ix_post_group_status",
        "ix_post_group_scheduled_time",
        "ix_post_group_workspace_user_id",
        "ix_post_group_account_id",
    ):
        op.drop_index(index, table_name="post_group")
    op.drop_table("post_group")
    for index in (
        "ix_platform_connection_platform_id",
        "ix_platform_connection_workspace_user_id",
        "ix_platform_connection_account_id",
    ):
        op.drop_index(index, table_name="platform_connection")
    op.drop_table("platform_connection")
    op.drop_index("ix_workspace_user_account_id", table_name="workspace_user")
    op.drop_table("workspace_user")
    op.drop_index("ix_api_key_account_id", table_name="api_key")
    op.drop_table("api_key")
    op.drop_table("account")
