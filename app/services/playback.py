"""Play tracking, the only writer of locally owned release fields."""

from __future__ import annotations

import logging
from datetime import datetime

from ..models import CollectionItem, PlayStats
from ..store import ReleaseStore

logger = logging.getLogger(__name__)


class PlaybackService:
    def __init__(self, store: ReleaseStore):
        self._store = store

    async def mark_as_played(self, release_id: int) -> CollectionItem | None:
        """Increment the play count and stamp the last played date."""

        release = await self._store.get_release(release_id)
        if release is None:
            logger.warning("Release %s not found", release_id)
            return None

        updated = release.model_copy(
            update={
                "play_count": release.play_count + 1,
                "last_played_date": datetime.utcnow(),
            }
        )
        await self._store.update_release(
            release_id,
            {
                "play_count": updated.play_count,
                "last_played_date": updated.last_played_date,
            },
        )
        logger.info(
            "Marked as played: %s (play count: %s)", release.title, updated.play_count
        )
        return updated

    async def get_play_stats(self, release_id: int) -> PlayStats | None:
        release = await self._store.get_release(release_id)
        if release is None:
            return None

        days_since: int | None = None
        if release.last_played_date is not None:
            days_since = (datetime.utcnow() - release.last_played_date).days
        return PlayStats(
            play_count=release.play_count,
            last_played_date=release.last_played_date,
            days_since_last_played=days_since,
        )
