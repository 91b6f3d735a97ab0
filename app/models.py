"""Pydantic models and value objects describing the collection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Fields owned by Discogs; every sync overwrites them. Play tracking fields are
# owned locally and ``original_year`` is owned by the master-release fetcher.
CATALOG_OWNED_FIELDS: tuple[str, ...] = (
    "instance_id",
    "title",
    "artists",
    "year",
    "master_id",
    "formats",
    "labels",
    "genres",
    "styles",
    "thumb",
    "cover_image",
    "date_added_to_collection",
    "notes",
    "rating",
)


class CollectionItem(BaseModel):
    """A single release in the user's record collection."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    instance_id: int | None = None
    title: str
    artists: list[str] = Field(default_factory=list)
    year: int | None = None
    master_id: int | None = None
    original_year: int | None = None
    formats: list[str] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)
    styles: list[str] = Field(default_factory=list)
    thumb: str | None = None
    cover_image: str | None = None

    play_count: int = 0
    last_played_date: datetime | None = None
    date_added: datetime = Field(default_factory=datetime.utcnow)

    date_added_to_collection: datetime | None = None
    notes: str | None = None
    rating: int | None = None

    def catalog_fields(self) -> dict[str, Any]:
        """Return only the values a sync is allowed to overwrite."""

        return {name: getattr(self, name) for name in CATALOG_OWNED_FIELDS}


@dataclass(slots=True)
class SyncOutcome:
    """Result of a single collection sync run."""

    success: bool
    total_synced: int
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.success,
            "totalSynced": self.total_synced,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True, slots=True)
class EnrichmentProgress:
    """Snapshot of the master-release background fetch."""

    total: int = 0
    completed: int = 0
    in_progress: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "completed": self.completed,
            "inProgress": self.in_progress,
        }


@dataclass(slots=True)
class PlayStats:
    """Play tracking summary for one release."""

    play_count: int
    last_played_date: datetime | None = None
    days_since_last_played: int | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "playCount": self.play_count,
            "lastPlayedDate": (
                self.last_played_date.isoformat() if self.last_played_date else None
            ),
            "daysSinceLastPlayed": self.days_since_last_played,
        }
