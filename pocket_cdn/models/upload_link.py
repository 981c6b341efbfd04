from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from pocket_cdn.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UploadLink(Base):
    """A named, expiring credential that stands in for the API key at upload time."""

    __tablename__ = "upload_link"
    __table_args__ = (Index("ix_upload_link_expires_at", "expires_at"),)

    name: Mapped[str] = mapped_column(String(200), primary_key=True)
    api_key: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"UploadLink(name={self.name!r}, expires_at={self.expires_at!r})"
