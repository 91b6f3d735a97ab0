"""Entry point for the FastAPI-powered vinyl collection tracker."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .config import settings
from .credentials import CredentialsService
from .database import Database
from .services.collection_sync import CollectionSyncService
from .services.discogs import DiscogsClient
from .services.master_release import MasterReleaseService
from .services.playback import PlaybackService
from .store import ReleaseStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


class CredentialsPayload(BaseModel):
    username: str
    token: str


class EnabledPayload(BaseModel):
    enabled: bool


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    discogs_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.discogs_api_url),
            timeout=httpx.Timeout(20.0, connect=10.0),
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    store = ReleaseStore(
        database.session_factory,
        master_release_sync_default=settings.master_release_sync_default,
    )
    credentials = CredentialsService(settings, store)
    await credentials.load()

    discogs = DiscogsClient(settings, discogs_http_client, credentials)
    master_release_service = MasterReleaseService(settings, discogs, store)

    fastapi_app.state.database = database
    fastapi_app.state.store = store
    fastapi_app.state.credentials = credentials
    fastapi_app.state.sync_service = CollectionSyncService(settings, discogs, store)
    fastapi_app.state.master_release_service = master_release_service
    fastapi_app.state.playback_service = PlaybackService(store)

    if credentials.has_credentials():
        await master_release_service.resume_if_needed()

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        master_release_service.stop_background_fetch()
        await master_release_service.wait_for_completion()
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Discogs collection mirror with play tracking",
        version=settings.app_version,
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def _require_state(fastapi_app: FastAPI, name: str, expected: type) -> Any:
    value = getattr(fastapi_app.state, name, None)
    if not isinstance(value, expected):
        raise RuntimeError(f"{expected.__name__} not initialised")
    return value


def register_routes(fastapi_app: FastAPI) -> None:
    def store() -> ReleaseStore:
        return _require_state(fastapi_app, "store", ReleaseStore)

    def sync_service() -> CollectionSyncService:
        return _require_state(fastapi_app, "sync_service", CollectionSyncService)

    def master_service() -> MasterReleaseService:
        return _require_state(
            fastapi_app, "master_release_service", MasterReleaseService
        )

    def playback_service() -> PlaybackService:
        return _require_state(fastapi_app, "playback_service", PlaybackService)

    def credentials() -> CredentialsService:
        return _require_state(fastapi_app, "credentials", CredentialsService)

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.post("/api/sync")
    async def sync_collection() -> dict[str, Any]:
        outcome = await sync_service().sync_collection()
        if outcome.success:
            await master_service().start_background_fetch()
        return outcome.to_payload()

    @fastapi_app.get("/api/sync/status")
    async def sync_status() -> dict[str, Any]:
        last_sync = await store().get_last_sync_date()
        return {
            "count": await store().get_collection_count(),
            "lastSyncDate": last_sync.isoformat() if last_sync else None,
            "hasCredentials": credentials().has_credentials(),
        }

    @fastapi_app.delete("/api/collection")
    async def clear_collection() -> dict[str, str]:
        master_service().stop_background_fetch()
        await sync_service().clear_synced_data()
        return {"status": "cleared"}

    @fastapi_app.get("/api/releases")
    async def list_releases() -> list[dict[str, Any]]:
        releases = await store().get_all_releases()
        return [release.model_dump(mode="json") for release in releases]

    @fastapi_app.get("/api/releases/{release_id}")
    async def get_release(release_id: int) -> dict[str, Any]:
        release = await store().get_release(release_id)
        if release is None:
            raise HTTPException(status_code=404, detail=f"Release {release_id} not found")
        return release.model_dump(mode="json")

    @fastapi_app.post("/api/releases/{release_id}/play")
    async def mark_as_played(release_id: int) -> dict[str, Any]:
        release = await playback_service().mark_as_played(release_id)
        if release is None:
            raise HTTPException(status_code=404, detail=f"Release {release_id} not found")
        return release.model_dump(mode="json")

    @fastapi_app.get("/api/releases/{release_id}/stats")
    async def play_stats(release_id: int) -> dict[str, Any]:
        stats = await playback_service().get_play_stats(release_id)
        if stats is None:
            raise HTTPException(status_code=404, detail=f"Release {release_id} not found")
        return stats.to_payload()

    @fastapi_app.get("/api/master-releases/progress")
    async def master_progress() -> dict[str, Any]:
        return master_service().progress.to_payload()

    @fastapi_app.post("/api/master-releases/start")
    async def start_master_fetch() -> dict[str, Any]:
        service = master_service()
        await service.start_background_fetch()
        return service.progress.to_payload()

    @fastapi_app.post("/api/master-releases/stop")
    async def stop_master_fetch() -> dict[str, Any]:
        service = master_service()
        service.stop_background_fetch()
        return service.progress.to_payload()

    @fastapi_app.put("/api/master-releases/enabled")
    async def set_master_fetch_enabled(payload: EnabledPayload) -> dict[str, bool]:
        await master_service().set_enabled(payload.enabled)
        return {"enabled": payload.enabled}

    @fastapi_app.put("/api/credentials")
    async def set_credentials(payload: CredentialsPayload) -> dict[str, Any]:
        try:
            await credentials().set_credentials(payload.username, payload.token)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"username": credentials().get_username(), "hasCredentials": True}

    @fastapi_app.delete("/api/credentials")
    async def clear_credentials() -> dict[str, bool]:
        master_service().stop_background_fetch()
        await credentials().clear_credentials()
        return {"hasCredentials": False}


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
