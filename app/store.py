"""Persistent record store for collection releases and app metadata."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .db_models import MetadataRecord, ReleaseRecord
from .models import CollectionItem

logger = logging.getLogger(__name__)

LAST_SYNC_DATE_KEY = "lastSyncDate"
MASTER_RELEASE_SYNC_KEY = "masterReleaseSyncEnabled"

_UPDATABLE_FIELDS = frozenset(CollectionItem.model_fields) - {"id"}


class ReleaseStore:
    """Single-item reads and writes over the ``releases`` table.

    Every write runs in its own session and commits immediately, so readers
    only ever observe fully written releases.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        master_release_sync_default: bool = True,
    ) -> None:
        self._session_factory = session_factory
        self._master_release_sync_default = master_release_sync_default

    async def get_release(self, release_id: int) -> CollectionItem | None:
        async with self._session_factory() as session:
            record = await session.get(ReleaseRecord, release_id)
            if record is None:
                return None
            return CollectionItem.model_validate(record)

    async def get_all_releases(self) -> list[CollectionItem]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ReleaseRecord).order_by(ReleaseRecord.id)
            )
            return [CollectionItem.model_validate(row) for row in result.scalars()]

    async def add_release(self, item: CollectionItem) -> int:
        async with self._session_factory() as session:
            session.add(ReleaseRecord(**item.model_dump()))
            await session.commit()
        return item.id

    async def update_release(self, release_id: int, changes: Mapping[str, Any]) -> int:
        """Apply a partial update and return the number of rows changed."""

        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown release fields: {', '.join(sorted(unknown))}")

        values = dict(changes)
        # original_year is never cleared once a master fetch has set it
        if "original_year" in values and values["original_year"] is None:
            values.pop("original_year")
        if not values:
            return 0

        async with self._session_factory() as session:
            result = await session.execute(
                update(ReleaseRecord)
                .where(ReleaseRecord.id == release_id)
                .values(**values)
            )
            await session.commit()
            return result.rowcount or 0

    async def reset_original_year(self, release_id: int) -> None:
        """Forget the original year so the release is enriched again.

        Only used when the release has been linked to a different master.
        """

        async with self._session_factory() as session:
            await session.execute(
                update(ReleaseRecord)
                .where(ReleaseRecord.id == release_id)
                .values(original_year=None)
            )
            await session.commit()

    async def delete_release(self, release_id: int) -> None:
        async with self._session_factory() as session:
            await session.execute(
                delete(ReleaseRecord).where(ReleaseRecord.id == release_id)
            )
            await session.commit()

    async def clear_all_data(self) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(ReleaseRecord))
            await session.commit()

    async def get_collection_count(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count()).select_from(ReleaseRecord)
            )
            return int(result.scalar_one())

    async def get_releases_needing_master_data(self) -> list[CollectionItem]:
        """Return releases that reference a master but lack an original year."""

        async with self._session_factory() as session:
            result = await session.execute(
                select(ReleaseRecord)
                .where(
                    ReleaseRecord.master_id.is_not(None),
                    ReleaseRecord.original_year.is_(None),
                )
                .order_by(ReleaseRecord.id)
            )
            return [CollectionItem.model_validate(row) for row in result.scalars()]

    async def get_releases_with_original_year_count(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count())
                .select_from(ReleaseRecord)
                .where(ReleaseRecord.original_year.is_not(None))
            )
            return int(result.scalar_one())

    async def get_metadata(self, key: str, default: Any = None) -> Any:
        async with self._session_factory() as session:
            record = await session.get(MetadataRecord, key)
            if record is None:
                return default
            return record.value

    async def set_metadata(self, key: str, value: Any) -> None:
        async with self._session_factory() as session:
            record = await session.get(MetadataRecord, key)
            if record is None:
                session.add(MetadataRecord(key=key, value=value))
            else:
                record.value = value
                record.updated_at = datetime.utcnow()
            await session.commit()

    async def get_last_sync_date(self) -> datetime | None:
        raw = await self.get_metadata(LAST_SYNC_DATE_KEY)
        if not raw:
            return None
        try:
            return datetime.fromisoformat(str(raw))
        except ValueError:
            logger.warning("Ignoring malformed last sync date %r", raw)
            return None

    async def set_last_sync_date(self, value: datetime) -> None:
        await self.set_metadata(LAST_SYNC_DATE_KEY, value.isoformat())

    async def is_master_release_sync_enabled(self) -> bool:
        value = await self.get_metadata(MASTER_RELEASE_SYNC_KEY)
        if value is None:
            return self._master_release_sync_default
        return bool(value)

    async def set_master_release_sync_enabled(self, enabled: bool) -> None:
        await self.set_metadata(MASTER_RELEASE_SYNC_KEY, bool(enabled))
