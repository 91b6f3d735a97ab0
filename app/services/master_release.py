"""Background fetcher that fills in original release years from master data."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import replace
from typing import Any, Awaitable, Callable

from ..config import Settings
from ..models import EnrichmentProgress
from ..store import ReleaseStore
from ..utils import backoff_delay
from .discogs import DiscogsClient, DiscogsMasterRelease

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class FetchStopped(Exception):
    """Raised inside a run once its stop event has been set."""


class MasterReleaseService:
    """Fetches the master release of every stored item lacking an original year.

    One instance is created per process. At most one run is active at a time;
    the set of pending releases is re-derived from the store whenever a run
    starts, so an interrupted run resumes simply by starting again.
    """

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
        self._progress = EnrichmentProgress()
        self._task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None
        self._start_lock = asyncio.Lock()

    @property
    def progress(self) -> EnrichmentProgress:
        """Return the latest progress snapshot."""

        return self._progress

    @property
    def is_in_progress(self) -> bool:
        return self._progress.in_progress

    async def start_background_fetch(self) -> None:
        """Launch a run in the background and return without waiting for it."""

        async with self._start_lock:
            if self._progress.in_progress:
                logger.info("Master fetch already in progress")
                return

            try:
                enabled = await self._store.is_master_release_sync_enabled()
            except Exception:
                logger.exception("Failed to read the master release sync flag")
                return
            if not enabled:
                logger.info("Master release sync is disabled")
                return

            stop_event = asyncio.Event()
            self._stop_event = stop_event
            self._progress = replace(self._progress, in_progress=True)
            self._task = asyncio.create_task(self._run(stop_event))

    async def resume_if_needed(self) -> None:
        """Start a run at startup when releases are still waiting for master data."""

        try:
            if not await self._store.is_master_release_sync_enabled():
                logger.info("Master release sync is disabled, not resuming")
                return

            pending = await self._store.get_releases_needing_master_data()
            if pending and not self._progress.in_progress:
                logger.info("Resuming master fetch for %s releases", len(pending))
                await self.start_background_fetch()
        except Exception:
            logger.exception("Failed to check for pending master data")

    def stop_background_fetch(self) -> None:
        """Ask the active run to stop and report idle immediately.

        The run notices at its next checkpoint; an in-flight request is
        cancelled and its result is never written.
        """

        if self._stop_event is not None:
            self._stop_event.set()
            self._stop_event = None
        self._progress = replace(self._progress, in_progress=False)

    async def set_enabled(self, enabled: bool) -> None:
        """Persist the enabled flag, stopping or resuming the fetch to match."""

        await self._store.set_master_release_sync_enabled(enabled)
        if enabled:
            await self.resume_if_needed()
        else:
            self.stop_background_fetch()

    async def wait_for_completion(self) -> None:
        """Wait until the most recently started run has finished."""

        task = self._task
        if task is None:
            return
        with suppress(asyncio.CancelledError):
            await task

    async def fetch_master_release(
        self,
        master_id: int,
        max_retries: int | None = None,
        *,
        stop_event: asyncio.Event | None = None,
    ) -> DiscogsMasterRelease | None:
        """Fetch a master release, retrying with exponential backoff.

        Returns ``None`` once every attempt has failed.
        """

        retries = (
            self._settings.master_fetch_max_retries
            if max_retries is None
            else max_retries
        )
        stop_event = stop_event or asyncio.Event()
        base_delay = self._settings.discogs_request_delay

        for attempt in range(1, retries + 1):
            try:
                return await self._until_stopped(
                    self._discogs.fetch_master_release(master_id), stop_event
                )
            except FetchStopped:
                raise
            except Exception as exc:
                if attempt == retries:
                    logger.error(
                        "Failed to fetch master %s after %s attempts: %s",
                        master_id,
                        retries,
                        exc,
                    )
                    return None
                retry_delay = backoff_delay(base_delay, attempt)
                logger.warning(
                    "Retry %s/%s for master %s in %.1fs",
                    attempt,
                    retries,
                    master_id,
                    retry_delay,
                )
                await self._until_stopped(self._sleep(retry_delay), stop_event)
        return None

    async def _run(self, stop_event: asyncio.Event) -> None:
        try:
            pending = await self._store.get_releases_needing_master_data()
            completed = await self._store.get_releases_with_original_year_count()

            if not pending:
                logger.info("All releases already have master data")
                self._publish(
                    stop_event,
                    EnrichmentProgress(total=completed, completed=completed),
                )
                return

            self._publish(
                stop_event,
                EnrichmentProgress(
                    total=len(pending) + completed,
                    completed=completed,
                    in_progress=True,
                ),
            )
            logger.info("Starting master fetch: %s releases to process", len(pending))

            for release in pending:
                if stop_event.is_set():
                    logger.info("Master fetch aborted")
                    break

                if release.master_id:
                    await self._enrich_release(
                        release.id, release.master_id, stop_event
                    )

                # Rate limiting delay
                with suppress(FetchStopped):
                    await self._until_stopped(
                        self._sleep(self._settings.discogs_request_delay), stop_event
                    )
            else:
                logger.info("Master fetch completed")
        except Exception:
            logger.exception("Master fetch failed")
        finally:
            if self._stop_event is stop_event:
                self._stop_event = None
                self._progress = replace(self._progress, in_progress=False)

    async def _enrich_release(
        self, release_id: int, master_id: int, stop_event: asyncio.Event
    ) -> None:
        try:
            master = await self.fetch_master_release(master_id, stop_event=stop_event)
            if master is None or stop_event.is_set():
                return

            await self._store.update_release(
                release_id, {"original_year": master.year or 0}
            )
        except FetchStopped:
            return
        except Exception:
            logger.exception("Failed to fetch master for release %s", release_id)
            return

        # Counted only once the store write has succeeded.
        self._publish(
            stop_event,
            replace(self._progress, completed=self._progress.completed + 1),
        )

    def _publish(self, stop_event: asyncio.Event, progress: EnrichmentProgress) -> None:
        # A run that has been stopped no longer owns the progress cell.
        if self._stop_event is stop_event:
            self._progress = progress

    @staticmethod
    async def _until_stopped(awaitable: Awaitable[Any], stop_event: asyncio.Event) -> Any:
        """Await ``awaitable`` unless the stop event fires first."""

        if stop_event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise FetchStopped()

        work = asyncio.ensure_future(awaitable)
        stopper = asyncio.ensure_future(stop_event.wait())
        try:
            await asyncio.wait({work, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopper.cancel()
            finished = work.done()
            if not finished:
                work.cancel()
        if not finished:
            raise FetchStopped()
        return work.result()
