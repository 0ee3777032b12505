"""Release table."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rollout.db.base import Base, TimestampMixin


class ReleaseRow(Base, TimestampMixin):
    __tablename__ = "releases"

    release_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    # draft -> active -> archived, one way
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft", index=True)
    version_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    release_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
