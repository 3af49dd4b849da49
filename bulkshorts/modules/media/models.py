from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import BigInteger, Float, Index, String, Text
from bulkshorts.core.base import Base, TimestampedMixin

class MediaAsset(Base, TimestampedMixin):
    __tablename__ = "media"
    __table_args__ = (Index("ix_media_user_original_url", "user_id", "original_url"),)

    source: Mapped[str] = mapped_column(String(16))  # local, remote
    # NULL on rows written before user partitioning; read back as the guest user
    user_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    title: Mapped[str] = mapped_column(Text, default="")
    description: Mapped[str] = mapped_column(Text, default="")
    trim_start: Mapped[float] = mapped_column(Float, default=0.0)
    trim_end: Mapped[float | None] = mapped_column(Float, nullable=True)

    # remote only
    original_url: Mapped[str | None] = mapped_column(String(2048), nullable=True, index=True)

    # local only
    file_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    mime_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    file_size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    # object storage key of the binary
    blob_key: Mapped[str | None] = mapped_column(String(512), nullable=True)
