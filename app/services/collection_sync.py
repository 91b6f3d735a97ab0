"""Mirror the user's Discogs collection into the local release store."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable

from ..config import Settings
from ..models import CollectionItem, SyncOutcome
from ..store import ReleaseStore
from ..utils import describe_error, parse_discogs_timestamp
from .discogs import DiscogsClient, DiscogsFormat, DiscogsRelease

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def format_description(fmt: DiscogsFormat) -> str:
    """Render a format as ``Vinyl (LP, Album)``."""

    if fmt.descriptions:
        return f"{fmt.name} ({', '.join(fmt.descriptions)})"
    return fmt.name


def convert_release(release: DiscogsRelease) -> CollectionItem:
    """Map a collection listing entry onto the flat local release shape."""

    info = release.basic_information
    notes = release.notes[0].value if release.notes else None
    return CollectionItem(
        id=info.id,
        instance_id=release.instance_id,
        title=info.title,
        artists=[artist.name for artist in info.artists],
        year=info.year or None,
        master_id=info.master_id or None,
        formats=[format_description(fmt) for fmt in info.formats],
        labels=[label.name for label in info.labels],
        genres=list(info.genres),
        styles=list(info.styles),
        thumb=info.thumb or None,
        cover_image=info.cover_image or None,
        play_count=0,
        last_played_date=None,
        date_added_to_collection=parse_discogs_timestamp(release.date_added),
        notes=notes,
        rating=release.rating if release.rating and release.rating > 0 else None,
    )


class CollectionSyncService:
    """Fetches every collection page and reconciles it into the store."""

    def __init__(
        self,
        settings: Settings,
        discogs: DiscogsClient,
        store: ReleaseStore,
        *,
        sleep: Sleep = asyncio.sleep,
    ):
        self._settings = settings
        self._discogs = discogs
        self._store = store
        self._sleep = sleep
        self._lock = asyncio.Lock()

    async def has_synced_data(self) -> bool:
        return await self._store.get_collection_count() > 0

    async def clear_synced_data(self) -> None:
        """Remove every stored release so the next sync starts from scratch."""

        await self._store.clear_all_data()
        logger.info("All synced data cleared")

    async def sync_collection(self) -> SyncOutcome:
        """Fetch and reconcile the whole collection.

        Pages merged before a failure stay merged; reconciliation overwrites by
        release ID, so running the sync again is safe.
        """

        async with self._lock:
            try:
                return await self._sync_all_pages()
            except Exception as exc:
                logger.exception("Collection sync failed")
                return SyncOutcome(
                    success=False, total_synced=0, error=describe_error(exc)
                )

    async def _sync_all_pages(self) -> SyncOutcome:
        logger.info("Starting collection sync")
        first_page = await self._discogs.fetch_collection_page(1)
        total_pages = first_page.pagination.pages
        logger.info(
            "Found %s items across %s pages",
            first_page.pagination.items,
            total_pages,
        )
        await self._process_releases(first_page.releases)

        for page in range(2, total_pages + 1):
            await self._sleep(self._settings.discogs_request_delay)
            logger.info("Fetching page %s of %s", page, total_pages)
            page_data = await self._discogs.fetch_collection_page(page)
            await self._process_releases(page_data.releases)

        await self._store.set_last_sync_date(datetime.utcnow())
        final_count = await self._store.get_collection_count()
        logger.info("Sync complete: %s releases in database", final_count)
        return SyncOutcome(success=True, total_synced=final_count)

    async def _process_releases(self, releases: list[DiscogsRelease]) -> None:
        for discogs_release in releases:
            release = convert_release(discogs_release)
            existing = await self._store.get_release(release.id)
            if existing is None:
                await self._store.add_release(release)
            else:
                await self._store.update_release(release.id, release.catalog_fields())
                # A year enriched from the previous master no longer applies
                if (
                    existing.original_year is not None
                    and existing.master_id != release.master_id
                ):
                    await self._store.reset_original_year(release.id)
