"""SQLAlchemy ORM models backing the persistent state."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class ReleaseRecord(Base):
    """A release in the user's collection, keyed by its Discogs release ID."""

    __tablename__ = "releases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    instance_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    title: Mapped[str] = mapped_column(String(512))
    artists: Mapped[list[str]] = mapped_column(JSON, default=list)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    master_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    original_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    formats: Mapped[list[str]] = mapped_column(JSON, default=list)
    labels: Mapped[list[str]] = mapped_column(JSON, default=list)
    genres: Mapped[list[str]] = mapped_column(JSON, default=list)
    styles: Mapped[list[str]] = mapped_column(JSON, default=list)
    thumb: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    cover_image: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    play_count: Mapped[int] = mapped_column(Integer, default=0)
    last_played_date: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    date_added: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    date_added_to_collection: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)


class MetadataRecord(Base):
    """Small key/value store for application state such as the last sync."""

    __tablename__ = "metadata"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
