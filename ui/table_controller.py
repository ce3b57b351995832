"""Search/detail table controller.

Owns the current search result set, the per-row expansion state and the
session-scoped song detail cache.  Rendering is left to the caller: the
controller only exposes state (``rows``, ``row_state``, ``detail``) and a
LoadingIndicator.

Row states
----------
::

    COLLAPSED --toggle--> SHOWN                 (detail cached)
    COLLAPSED --toggle--> LOADING --> SHOWN     (fetched, then cached)
                          LOADING --> COLLAPSED (fetch failed, user notified)
    LOADING   --toggle--> COLLAPSED             (fetch keeps running, still cached)
    SHOWN     --toggle--> COLLAPSED             (cache untouched)

Ordering
--------
- Each submitted query bumps a generation counter; a response (or failure)
  belonging to an older generation is dropped, so the table only ever shows
  the latest query's rows.
- At most one detail fetch per song id is in flight; later expansions of the
  same id await the pending task.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Protocol

from data.fetcher import ApiError
from data.models import SongDetail, SongRow
from ui.components import Notifier, log_notifier

logger = logging.getLogger(__name__)

# Rows per page in the results table.
PAGE_SIZE = 100


class SongSearchSource(Protocol):
    async def search_songs(self, search: str, exact: bool = False) -> list[SongRow]: ...

    async def song_detail(self, song_id: str) -> SongDetail: ...


class RowState(str, Enum):
    COLLAPSED = "collapsed"
    LOADING = "loading"
    SHOWN = "shown"


class LoadingIndicator:
    """Reference-counted busy flag; visible while any operation is outstanding."""

    def __init__(self) -> None:
        self._active = 0

    @property
    def visible(self) -> bool:
        return self._active > 0

    @contextmanager
    def busy(self) -> Iterator[None]:
        self._active += 1
        try:
            yield
        finally:
            self._active -= 1


class SearchTableController:
    def __init__(
        self,
        client: SongSearchSource,
        notify: Notifier | None = None,
        page_size: int = PAGE_SIZE,
    ):
        self._client = client
        self._notify = notify or log_notifier
        self.page_size = max(1, int(page_size))
        self.loader = LoadingIndicator()

        self._rows: list[SongRow] = []
        self._generation = 0
        self._row_states: dict[str, RowState] = {}
        self._detail_cache: dict[str, SongDetail] = {}
        self._pending: dict[str, asyncio.Task] = {}

    # ---------------------------------------------------------------------
    # Result set
    # ---------------------------------------------------------------------

    @property
    def rows(self) -> list[SongRow]:
        return list(self._rows)

    @property
    def page_count(self) -> int:
        if not self._rows:
            return 0
        return (len(self._rows) + self.page_size - 1) // self.page_size

    def page(self, index: int) -> list[SongRow]:
        """Rows on 0-indexed page *index*; empty past the last page."""
        if index < 0:
            return []
        start = index * self.page_size
        return self._rows[start:start + self.page_size]

    async def submit_query(self, search: str, exact: bool = False) -> bool:
        """Replace the result set with the rows matching *search*.

        Returns True when this query's rows were installed.  Empty searches are
        ignored and leave the table as it is.
        """
        if not search:
            return False

        self._generation += 1
        generation = self._generation
        self._rows = []
        self._row_states.clear()

        with self.loader.busy():
            try:
                rows = await self._client.search_songs(search, exact)
            except ApiError as err:
                if generation != self._generation:
                    logger.info("Ignoring failure of superseded query %r: %s", search, err)
                    return False
                logger.warning("Search %r failed: %s", search, err)
                self._notify(str(err))
                return False

        if generation != self._generation:
            logger.info("Discarding %d rows from superseded query %r", len(rows), search)
            return False

        self._rows = list(rows)
        logger.debug("Query %r returned %d rows", search, len(self._rows))
        return True

    # ---------------------------------------------------------------------
    # Row expansion
    # ---------------------------------------------------------------------

    def row_state(self, song_id: str) -> RowState:
        return self._row_states.get(str(song_id), RowState.COLLAPSED)

    def detail(self, song_id: str) -> SongDetail | None:
        return self._detail_cache.get(str(song_id))

    async def toggle_row(self, song_id: str) -> RowState:
        """Expand or collapse the row for *song_id* and return its new state."""
        song_id = str(song_id)
        state = self.row_state(song_id)

        if state is not RowState.COLLAPSED:
            self._row_states[song_id] = RowState.COLLAPSED
            return RowState.COLLAPSED

        if song_id in self._detail_cache:
            self._row_states[song_id] = RowState.SHOWN
            return RowState.SHOWN

        self._row_states[song_id] = RowState.LOADING
        try:
            await self._load_detail(song_id)
        except ApiError:
            return self.row_state(song_id)

        if self.row_state(song_id) is RowState.LOADING:
            self._row_states[song_id] = RowState.SHOWN
        return self.row_state(song_id)

    async def _load_detail(self, song_id: str) -> SongDetail:
        task = self._pending.get(song_id)
        if task is None:
            task = asyncio.ensure_future(self._fetch_detail(song_id))
            self._pending[song_id] = task
        return await task

    async def _fetch_detail(self, song_id: str) -> SongDetail:
        with self.loader.busy():
            try:
                detail = await self._client.song_detail(song_id)
            except ApiError as err:
                logger.warning("Detail fetch for song %s failed: %s", song_id, err)
                if self.row_state(song_id) is RowState.LOADING:
                    self._row_states[song_id] = RowState.COLLAPSED
                self._notify(str(err))
                raise
            finally:
                self._pending.pop(song_id, None)

        # Cached entries are never replaced.
        return self._detail_cache.setdefault(song_id, detail)
