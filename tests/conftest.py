"""Pytest configuration and test helpers."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any

import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
async def database(tmp_path):
    """A fresh SQLite database with every table created."""

    from app.database import Database

    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'releases.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def store(database):
    from app.store import ReleaseStore

    return ReleaseStore(database.session_factory)


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


def build_discogs_release(
    release_id: int,
    *,
    title: str | None = None,
    year: int = 1977,
    master_id: int = 0,
    rating: int = 0,
    notes: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Return a collection listing entry shaped like the Discogs API."""

    payload: dict[str, Any] = {
        "id": release_id,
        "instance_id": release_id * 10,
        "date_added": "2023-05-01T10:00:00-07:00",
        "rating": rating,
        "basic_information": {
            "id": release_id,
            "title": title or f"Record {release_id}",
            "year": year,
            "master_id": master_id,
            "master_url": None,
            "resource_url": f"https://api.discogs.com/releases/{release_id}",
            "thumb": f"https://img.example.com/{release_id}-thumb.jpg",
            "cover_image": f"https://img.example.com/{release_id}.jpg",
            "formats": [
                {"name": "Vinyl", "qty": "1", "descriptions": ["LP", "Album"]}
            ],
            "labels": [{"name": "Warner Bros.", "catno": "BSK 3010", "id": 1}],
            "artists": [{"name": "Fleetwood Mac", "id": 2, "anv": "", "join": ""}],
            "genres": ["Rock"],
            "styles": ["Pop Rock"],
        },
    }
    if notes is not None:
        payload["notes"] = notes
    return payload


@pytest.fixture
def discogs_release():
    return build_discogs_release
