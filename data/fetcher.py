"""Data fetching layer — wraps the song statistics HTTP API.

SongStatsClient is a plain blocking ``requests`` client: one method per
endpoint, each returning typed rows from data.models.  AsyncSongStatsClient
runs the same calls off the event loop so the UI controllers can await them.

Error policy
------------
No retries.  Every failure surfaces as ApiError:

- non-2xx response  → message is the response body text (the backend sends
  plain-text errors), ``status_code`` is kept;
- transport failure → message is the underlying error text;
- malformed payload → ResponseShapeError (an ApiError subclass).

Bin counts are validated before any request is made and raise ValueError.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, TypeVar
from urllib.parse import quote

import requests
from pydantic import TypeAdapter, ValidationError

from data.models import (
    BUCKET_ROWS,
    DIFFICULTY_ROWS,
    SONG_ROWS,
    VINTAGE_ROWS,
    DifficultyBinRow,
    DifficultyBucketRow,
    SongDetail,
    SongRow,
    VintageStatRow,
)
from data.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# The backend answers 400 above this.
MAX_BINS = 1000

_HEADERS = {"Accept": "application/json"}


class ApiError(Exception):
    """A request to the statistics backend failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ResponseShapeError(ApiError):
    """The backend answered 2xx but the payload was not the expected shape."""


def validate_bins(bins: Any) -> int:
    """Return *bins* as an int in 1..MAX_BINS or raise ValueError."""
    if isinstance(bins, bool):
        raise ValueError(f"Bin count must be an integer, got {bins!r}")
    try:
        bins_int = int(bins)
    except (TypeError, ValueError):
        raise ValueError(f"Bin count must be an integer, got {bins!r}") from None
    if bins_int != bins and not isinstance(bins, str):
        raise ValueError(f"Bin count must be an integer, got {bins!r}")
    if bins_int < 1:
        raise ValueError("Bin count must be at least 1")
    if bins_int > MAX_BINS:
        raise ValueError(f"Max bins allowed is {MAX_BINS}")
    return bins_int


def _parse_list(payload: Any, adapter: TypeAdapter[list[T]], what: str) -> list[T]:
    if not isinstance(payload, list):
        raise ResponseShapeError(f"Expected a JSON array for {what}, got {type(payload).__name__}")
    try:
        return adapter.validate_python(payload)
    except ValidationError as exc:
        raise ResponseShapeError(f"Malformed {what} response: {exc}") from exc


class SongStatsClient:
    def __init__(self, settings: Settings | None = None, session: requests.Session | None = None):
        self.settings = settings or Settings()
        self.base_url = self.settings.api_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update(_HEADERS)

    def _get_json(self, path: str, params: dict[str, str] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("GET %s params=%s", url, params)
        try:
            r = self.session.get(url, params=params, timeout=self.settings.timeout)
        except requests.RequestException as exc:
            logger.warning("GET %s failed: %s", path, exc)
            raise ApiError(str(exc)) from exc

        if not r.ok:
            message = r.text.strip() or f"HTTP {r.status_code}"
            logger.warning("GET %s -> %s: %s", path, r.status_code, message)
            raise ApiError(message, status_code=r.status_code)

        try:
            return r.json()
        except ValueError as exc:
            raise ResponseShapeError(f"Invalid JSON from {path}: {exc}") from exc

    # ---------------------------------------------------------------------
    # Search
    # ---------------------------------------------------------------------

    def search_songs(self, search: str, exact: bool = False) -> list[SongRow]:
        params = {"search": search, "exact": "true" if exact else "false"}
        payload = self._get_json("/query", params=params)
        return _parse_list(payload, SONG_ROWS, "search")

    def song_detail(self, song_id: str) -> SongDetail:
        payload = self._get_json(f"/songquery/{quote(str(song_id), safe='')}")
        if not isinstance(payload, list):
            raise ResponseShapeError(f"Expected a JSON array for song {song_id}")
        try:
            return SongDetail.from_json(song_id, payload)
        except ValidationError as exc:
            raise ResponseShapeError(f"Malformed song detail response: {exc}") from exc

    # ---------------------------------------------------------------------
    # Statistics
    # ---------------------------------------------------------------------

    def vintage_stats(self) -> list[VintageStatRow]:
        payload = self._get_json("/stats/vintage")
        return _parse_list(payload, VINTAGE_ROWS, "vintage stats")

    def difficulty_stats(self, bins: int) -> list[DifficultyBinRow]:
        bins = validate_bins(bins)
        payload = self._get_json(f"/stats/difficulty/{bins}")
        return _parse_list(payload, DIFFICULTY_ROWS, "difficulty stats")

    def difficulty_bucket_stats(self, bins: int) -> list[DifficultyBucketRow]:
        bins = validate_bins(bins)
        payload = self._get_json(f"/stats/difficulty2/{bins}")
        return _parse_list(payload, BUCKET_ROWS, "difficulty bucket stats")


class AsyncSongStatsClient:
    """Awaitable facade over SongStatsClient; each call runs in a worker thread."""

    def __init__(self, client: SongStatsClient):
        self._client = client

    async def search_songs(self, search: str, exact: bool = False) -> list[SongRow]:
        return await asyncio.to_thread(self._client.search_songs, search, exact)

    async def song_detail(self, song_id: str) -> SongDetail:
        return await asyncio.to_thread(self._client.song_detail, song_id)

    async def vintage_stats(self) -> list[VintageStatRow]:
        return await asyncio.to_thread(self._client.vintage_stats)

    async def difficulty_stats(self, bins: int) -> list[DifficultyBinRow]:
        return await asyncio.to_thread(self._client.difficulty_stats, bins)

    async def difficulty_bucket_stats(self, bins: int) -> list[DifficultyBucketRow]:
        return await asyncio.to_thread(self._client.difficulty_bucket_stats, bins)
