"""Utilities for communicating with the Discogs API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import Settings
from ..credentials import CredentialsService

logger = logging.getLogger(__name__)


class DiscogsAPIError(RuntimeError):
    """Raised when a Discogs request fails or returns an unusable payload."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class _DiscogsModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class DiscogsPagination(_DiscogsModel):
    page: int
    pages: int
    per_page: int
    items: int


class DiscogsArtist(_DiscogsModel):
    name: str
    id: int | None = None


class DiscogsFormat(_DiscogsModel):
    name: str
    qty: str | None = None
    descriptions: list[str] | None = None


class DiscogsLabel(_DiscogsModel):
    name: str
    catno: str | None = None
    id: int | None = None


class DiscogsBasicInformation(_DiscogsModel):
    id: int
    title: str
    year: int | None = None
    master_id: int | None = None
    thumb: str | None = None
    cover_image: str | None = None
    artists: list[DiscogsArtist] = Field(default_factory=list)
    formats: list[DiscogsFormat] = Field(default_factory=list)
    labels: list[DiscogsLabel] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)
    styles: list[str] = Field(default_factory=list)


class DiscogsNote(_DiscogsModel):
    field_id: int | None = None
    value: str


class DiscogsRelease(_DiscogsModel):
    """One entry of a collection folder listing."""

    id: int
    instance_id: int | None = None
    date_added: str | None = None
    rating: int | None = 0
    basic_information: DiscogsBasicInformation
    notes: list[DiscogsNote] | None = None


class DiscogsCollectionPage(_DiscogsModel):
    pagination: DiscogsPagination
    releases: list[DiscogsRelease] = Field(default_factory=list)


class DiscogsMasterRelease(_DiscogsModel):
    id: int
    year: int | None = None
    title: str | None = None
    resource_url: str | None = None


class DiscogsClient:
    """Thin wrapper around the Discogs HTTP API.

    The wrapped ``httpx.AsyncClient`` is expected to carry the API base URL.
    Requests are issued one at a time by callers; this class does no pacing.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        credentials: CredentialsService,
    ):
        self._settings = settings
        self._client = http_client
        self._credentials = credentials

    def _headers(self) -> dict[str, str]:
        token = self._credentials.get_token()
        if not token:
            raise DiscogsAPIError("Discogs token is not configured")
        return {
            "Authorization": f"Discogs token={token}",
            "User-Agent": self._settings.user_agent,
            "Accept": "application/json",
        }

    async def fetch_collection_page(self, page: int) -> DiscogsCollectionPage:
        """Fetch one page of the user's "All" collection folder."""

        username = self._credentials.get_username()
        if not username:
            raise DiscogsAPIError("Discogs username is not configured")
        path = f"/users/{username}/collection/folders/0/releases"
        params = {"page": page, "per_page": self._settings.discogs_page_size}
        data = await self._get_json(path, params=params)
        return self._parse(DiscogsCollectionPage, data, path)

    async def fetch_master_release(self, master_id: int) -> DiscogsMasterRelease:
        path = f"/masters/{master_id}"
        data = await self._get_json(path)
        return self._parse(DiscogsMasterRelease, data, path)

    async def _get_json(
        self, path: str, *, params: dict[str, Any] | None = None
    ) -> Any:
        headers = self._headers()
        try:
            response = await self._client.get(path, headers=headers, params=params)
        except httpx.HTTPError as exc:
            raise DiscogsAPIError(
                f"Request to Discogs {path} failed: {exc.__class__.__name__}"
            ) from exc

        if response.status_code >= 400:
            raise DiscogsAPIError(
                f"Discogs returned HTTP {response.status_code} for {path}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise DiscogsAPIError(f"Unexpected non-JSON Discogs response for {path}") from exc

    @staticmethod
    def _parse(model: type[_DiscogsModel], data: Any, path: str) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.debug("Discogs payload for %s failed validation: %s", path, exc)
            raise DiscogsAPIError(
                f"Unexpected Discogs response structure for {path}"
            ) from exc
