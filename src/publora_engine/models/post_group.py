# src/publora_engine/models/post_group.py
"""SQLAlchemy models for post groups and their per-platform posts."""

from datetime import datetime

from sqlalchemy import JSON, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from publora_engine.db.session import Base
from publora_engine.db.time import UTCDateTime, utcnow

STATUS_DRAFT = "draft"
STATUS_SCHEDULED = "scheduled"
STATUS_PROCESSING = "processing"
STATUS_PUBLISHED = "published"
STATUS_FAILED = "failed"
STATUS_PARTIALLY_PUBLISHED = "partially_published"

# Statuses from which the owner may still edit or reschedule a group.
EDITABLE_STATUSES = (STATUS_DRAFT, STATUS_SCHEDULED)

TRANSITION_PROCESSING = "scheduled->processing"


class PostGroup(Base):
    """One logical post fanned out across several platforms.

    The group owns its posts and media; the set of platforms is fixed at
    creation and only ever deleted wholesale.
    """

    __tablename__ = "post_group"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("account.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    workspace_user_id: Mapped[str | None] = mapped_column(
        String(32),
        ForeignKey("workspace_user.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # Ordered list of platform ids exactly as accepted at creation.
    platforms: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    platform_settings: Mapped[dict[str, dict[str, object]]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    scheduled_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True, index=True)
    status: Mapped[str] = mapped_column(
        String(24),
        nullable=False,
        default=STATUS_DRAFT,
        index=True,
    )
    # Bumped on every write; update-post compares against the value it read.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    processing_started_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    posts: Mapped[list["PlatformPost"]] = relationship(
        back_populates="post_group",
        cascade="all, delete-orphan",
        order_by="PlatformPost.position",
    )
    media: Mapped[list["MediaAsset"]] = relationship(  # noqa: F821
        back_populates="post_group",
        cascade="all, delete-orphan",
        order_by="MediaAsset.created_at",
    )


class PlatformPost(Base):
    """A single platform-specific publish attempt owned by a post group."""

    __tablename__ = "platform_post"
    __table_args__ = (UniqueConstraint("post_group_id", "platform_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_group_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("post_group.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    platform: Mapped[str] = mapped_column(String(24), nullable=False)
    platform_id: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(24), nullable=False)
    posted_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    published_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    published_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    post_group: Mapped[PostGroup] = relationship(back_populates="posts")


class PostGroupIdRegistry(Base):
    """Append-only ledger of every id ever issued; rows are never deleted."""

    __tablename__ = "post_group_id_registry"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    issued_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class PostGroupTransition(Base):
    """Idempotency record for scheduler transitions (at most one per key)."""

    __tablename__ = "post_group_transition"
    __table_args__ = (UniqueConstraint("post_group_id", "transition"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_group_id: Mapped[str] = mapped_column(String(32), nullable=False)
    transition: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
