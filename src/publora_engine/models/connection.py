"""SQLAlchemy model for authorized social accounts."""

from datetime import datetime

from sqlalchemy import JSON, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from publora_engine.db.session import Base
from publora_engine.db.time import UTCDateTime, utcnow


class PlatformConnection(Base):
    """An account authorized through the (external) OAuth flow.

    Read-only from the API's point of view. ``platform_id`` is the
    ``"{platform}-{external_id}"`` join key referenced by posts.
    """

    __tablename__ = "platform_connection"
    __table_args__ = (UniqueConstraint("account_id", "platform_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
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
    platform: Mapped[str] = mapped_column(String(24), nullable=False)
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    platform_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    access_token_expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    # Platform specifics, e.g. {"instance_url": ...} for Mastodon or {"handle": ...} for Bluesky.
    extra: Mapped[dict[str, str]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
