from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.config import Settings
from app.credentials import CredentialsService
from app.main import register_routes
from app.models import CollectionItem, EnrichmentProgress, SyncOutcome
from app.services.collection_sync import CollectionSyncService
from app.services.master_release import MasterReleaseService
from app.services.playback import PlaybackService
from app.store import ReleaseStore


class InMemoryStore(ReleaseStore):
    """Dictionary-backed store stub for route testing."""

    def __init__(self) -> None:
        # Deliberately skip super().__init__ to avoid touching a database.
        self.releases: dict[int, CollectionItem] = {}
        self.metadata: dict[str, Any] = {}

    async def get_release(self, release_id: int) -> CollectionItem | None:
        return self.releases.get(release_id)

    async def get_all_releases(self) -> list[CollectionItem]:
        return [self.releases[key] for key in sorted(self.releases)]

    async def update_release(self, release_id: int, changes) -> int:
        release = self.releases.get(release_id)
        if release is None:
            return 0
        self.releases[release_id] = release.model_copy(update=dict(changes))
        return 1

    async def get_collection_count(self) -> int:
        return len(self.releases)

    async def get_metadata(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)

    async def set_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value


class DummySyncService(CollectionSyncService):
    def __init__(self, outcome: SyncOutcome) -> None:
        self.outcome = outcome
        self.calls = 0
        self.cleared = False

    async def sync_collection(self) -> SyncOutcome:  # type: ignore[override]
        self.calls += 1
        return self.outcome

    async def clear_synced_data(self) -> None:
        self.cleared = True


class DummyMasterService(MasterReleaseService):
    def __init__(self) -> None:
        self._progress = EnrichmentProgress(total=10, completed=4, in_progress=True)
        self.started = 0
        self.enabled: bool | None = None

    async def start_background_fetch(self) -> None:
        self.started += 1

    def stop_background_fetch(self) -> None:
        self._progress = replace(self._progress, in_progress=False)

    async def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled


def build_app(outcome: SyncOutcome | None = None) -> tuple[FastAPI, InMemoryStore]:
    app = FastAPI()
    register_routes(app)
    store = InMemoryStore()
    store.releases[1] = CollectionItem(
        id=1, title="Pet Sounds", artists=["The Beach Boys"], master_id=33
    )
    app.state.store = store
    app.state.credentials = CredentialsService(Settings(_env_file=None), store)
    app.state.sync_service = DummySyncService(
        outcome or SyncOutcome(success=True, total_synced=1)
    )
    app.state.master_release_service = DummyMasterService()
    app.state.playback_service = PlaybackService(store)
    return app, store


def test_successful_sync_starts_master_fetch() -> None:
    app, _ = build_app()

    with TestClient(app) as client:
        response = client.post("/api/sync")

    assert response.status_code == 200
    assert response.json() == {"success": True, "totalSynced": 1}
    assert app.state.master_release_service.started == 1


def test_failed_sync_reports_error_without_master_fetch() -> None:
    app, _ = build_app(
        SyncOutcome(success=False, total_synced=0, error="Discogs returned HTTP 503")
    )

    with TestClient(app) as client:
        response = client.post("/api/sync")

    assert response.json() == {
        "success": False,
        "totalSynced": 0,
        "error": "Discogs returned HTTP 503",
    }
    assert app.state.master_release_service.started == 0


def test_sync_status_reports_count_and_last_sync() -> None:
    app, store = build_app()
    store.metadata["lastSyncDate"] = datetime(2024, 6, 1, 9, 30).isoformat()

    with TestClient(app) as client:
        payload = client.get("/api/sync/status").json()

    assert payload == {
        "count": 1,
        "lastSyncDate": "2024-06-01T09:30:00",
        "hasCredentials": False,
    }


def test_master_progress_and_stop() -> None:
    app, _ = build_app()

    with TestClient(app) as client:
        progress = client.get("/api/master-releases/progress").json()
        stopped = client.post("/api/master-releases/stop").json()

    assert progress == {"total": 10, "completed": 4, "inProgress": True}
    assert stopped == {"total": 10, "completed": 4, "inProgress": False}


def test_toggle_master_fetch() -> None:
    app, _ = build_app()

    with TestClient(app) as client:
        response = client.put("/api/master-releases/enabled", json={"enabled": False})

    assert response.json() == {"enabled": False}
    assert app.state.master_release_service.enabled is False


def test_release_lookup_and_play() -> None:
    app, store = build_app()

    with TestClient(app) as client:
        release = client.get("/api/releases/1").json()
        played = client.post("/api/releases/1/play").json()
        missing = client.get("/api/releases/2")
        stats = client.get("/api/releases/1/stats").json()
        listing = client.get("/api/releases").json()

    assert release["title"] == "Pet Sounds"
    assert played["play_count"] == 1
    assert missing.status_code == 404
    assert stats["playCount"] == 1
    assert stats["daysSinceLastPlayed"] == 0
    assert [entry["id"] for entry in listing] == [1]
    assert store.releases[1].play_count == 1


def test_credentials_are_validated_and_stored() -> None:
    app, store = build_app()

    with TestClient(app) as client:
        rejected = client.put("/api/credentials", json={"username": "dj", "token": " "})
        accepted = client.put(
            "/api/credentials", json={"username": "dj", "token": "abc"}
        )
        status = client.get("/api/sync/status").json()

    assert rejected.status_code == 400
    assert accepted.json() == {"username": "dj", "hasCredentials": True}
    assert status["hasCredentials"] is True
    assert store.metadata["discogsCredentials"] == {"username": "dj", "token": "abc"}


def test_clear_collection() -> None:
    app, _ = build_app()

    with TestClient(app) as client:
        response = client.delete("/api/collection")

    assert response.json() == {"status": "cleared"}
    assert app.state.sync_service.cleared is True
    assert app.state.master_release_service.progress.in_progress is False
