"""Discogs API identity used to authenticate outbound requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import Settings
from .store import ReleaseStore

logger = logging.getLogger(__name__)

CREDENTIALS_KEY = "discogsCredentials"


@dataclass(frozen=True, slots=True)
class DiscogsCredentials:
    username: str
    token: str


class CredentialsService:
    """Holds the active Discogs credentials.

    Values configured through the environment act as the default; credentials
    entered at runtime are persisted in the metadata table and take precedence
    after a restart once :meth:`load` has run.
    """

    def __init__(self, settings: Settings, store: ReleaseStore) -> None:
        self._store = store
        self._credentials: DiscogsCredentials | None = None
        if settings.discogs_username and settings.discogs_token:
            self._credentials = DiscogsCredentials(
                username=settings.discogs_username, token=settings.discogs_token
            )

    async def load(self) -> None:
        """Restore credentials persisted by a previous run, if any."""

        stored = await self._store.get_metadata(CREDENTIALS_KEY)
        if not isinstance(stored, dict):
            return
        username = str(stored.get("username") or "").strip()
        token = str(stored.get("token") or "").strip()
        if username and token:
            self._credentials = DiscogsCredentials(username=username, token=token)
        else:
            logger.warning("Ignoring incomplete stored Discogs credentials")

    def get_username(self) -> str | None:
        return self._credentials.username if self._credentials else None

    def get_token(self) -> str | None:
        return self._credentials.token if self._credentials else None

    def has_credentials(self) -> bool:
        creds = self._credentials
        return creds is not None and bool(creds.username) and bool(creds.token)

    async def set_credentials(self, username: str, token: str) -> None:
        username = username.strip()
        token = token.strip()
        if not (username and token):
            raise ValueError("Both a Discogs username and token are required")
        self._credentials = DiscogsCredentials(username=username, token=token)
        await self._store.set_metadata(
            CREDENTIALS_KEY, {"username": username, "token": token}
        )

    async def clear_credentials(self) -> None:
        self._credentials = None
        await self._store.set_metadata(CREDENTIALS_KEY, None)
