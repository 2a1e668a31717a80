"""SQLAlchemy model for media uploaded against a post group."""

from datetime import datetime

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from publora_engine.db.session import Base
from publora_engine.db.time import UTCDateTime, utcnow

MEDIA_STATUS_PENDING = "pending"
MEDIA_STATUS_UPLOADED = "uploaded"


class MediaAsset(Base):
    """A file attached to exactly one post group.

    Rows start ``pending`` when an upload target is issued and flip to
    ``uploaded`` once the storage callback (or the client) confirms the write.
    """

    __tablename__ = "media_asset"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    post_group_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("post_group.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(127), nullable=False)
    object_key: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    file_url: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=MEDIA_STATUS_PENDING)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    uploaded_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    post_group: Mapped["PostGroup"] = relationship(back_populates="media")  # noqa: F821

    @property
    def is_video(self) -> bool:
        return self.content_type.startswith("video/")
