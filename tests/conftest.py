"""Shared test fixtures: row factories and in-memory async API fakes.

GatedClient hands every request a future the test resolves explicitly, so
tests can choose the order in which responses arrive.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from data.fetcher import ApiError
from data.models import (
    DifficultyBinRow,
    DifficultyBucketRow,
    SongDetail,
    SongRow,
    VintageStatRow,
)


async def settle(rounds: int = 5) -> None:
    """Let every ready task run until it blocks again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_song_rows(prefix: str, n: int = 3) -> list[SongRow]:
    return [
        SongRow(
            song_id=f"{prefix}-{i}",
            song_name=f"{prefix} song {i}",
            artist=f"{prefix} artist",
            anime=f"{prefix} anime",
            difficulty=10.0 * i,
        )
        for i in range(n)
    ]


class GatedClient:
    """Async API fake; every call waits on a future released by the test."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self._gates: dict[tuple[str, Any], asyncio.Future] = {}

    def _gate(self, key: tuple[str, Any]) -> asyncio.Future:
        if key not in self._gates:
            self._gates[key] = asyncio.get_running_loop().create_future()
        return self._gates[key]

    async def _wait(self, endpoint: str, arg: Any) -> Any:
        key = (endpoint, arg)
        self.calls.append(key)
        return await self._gate(key)

    def release(self, endpoint: str, arg: Any, result: Any) -> None:
        self._gate((endpoint, arg)).set_result(result)

    def fail(self, endpoint: str, arg: Any, message: str) -> None:
        self._gate((endpoint, arg)).set_exception(ApiError(message, status_code=500))

    def reset_gate(self, endpoint: str, arg: Any) -> None:
        self._gates.pop((endpoint, arg), None)

    def calls_to(self, endpoint: str) -> list[Any]:
        return [arg for ep, arg in self.calls if ep == endpoint]

    async def search_songs(self, search: str, exact: bool = False) -> list[SongRow]:
        return await self._wait("query", search)

    async def song_detail(self, song_id: str) -> SongDetail:
        return await self._wait("songquery", song_id)

    async def vintage_stats(self) -> list[VintageStatRow]:
        return await self._wait("vintage", None)

    async def difficulty_stats(self, bins: int) -> list[DifficultyBinRow]:
        return await self._wait("difficulty", bins)

    async def difficulty_bucket_stats(self, bins: int) -> list[DifficultyBucketRow]:
        return await self._wait("difficulty2", bins)


class InstantClient:
    """Async API fake answering from canned data immediately."""

    def __init__(self, **responses: Any) -> None:
        self.responses = responses
        self.calls: list[tuple[str, Any]] = []

    async def _answer(self, endpoint: str, arg: Any) -> Any:
        self.calls.append((endpoint, arg))
        result = self.responses.get(endpoint)
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(arg)
        return result

    async def search_songs(self, search: str, exact: bool = False) -> list[SongRow]:
        return await self._answer("query", search)

    async def song_detail(self, song_id: str) -> SongDetail:
        return await self._answer("songquery", song_id)

    async def vintage_stats(self) -> list[VintageStatRow]:
        return await self._answer("vintage", None)

    async def difficulty_stats(self, bins: int) -> list[DifficultyBinRow]:
        return await self._answer("difficulty", bins)

    async def difficulty_bucket_stats(self, bins: int) -> list[DifficultyBucketRow]:
        return await self._answer("difficulty2", bins)


@pytest.fixture
def notifications() -> list[str]:
    return []


@pytest.fixture
def notify(notifications: list[str]) -> Callable[[str], None]:
    return notifications.append


@pytest.fixture
def song_detail_42() -> SongDetail:
    return SongDetail(
        song_id="42",
        attributes=(
            ("name", "Sobakasu"),
            ("video", "abc123.webm"),
            ("id", "1234"),
            ("mp3", "abc123.mp3"),
            ("internal_flag", "x"),
        ),
    )


@pytest.fixture
def vintage_row_factory() -> Callable[..., VintageStatRow]:
    def _factory(
        vintage: str = "Spring 2019",
        kind: str = "All",
        guess_rate: float | None = 0.5,
        guess_count: int = 20,
        times_played: int = 100,
    ) -> VintageStatRow:
        return VintageStatRow(
            kind=kind,
            vintage=vintage,
            guess_rate=guess_rate,
            guess_count=guess_count,
            times_played=times_played,
        )

    return _factory


@pytest.fixture
def bucket_row_factory() -> Callable[..., DifficultyBucketRow]:
    def _factory(
        bucket_min: float | None = 0.0,
        bucket_max: float | None = 10.0,
        kind: str = "All",
        guess_rate: float | None = 0.4,
        guess_count: int = 50,
    ) -> DifficultyBucketRow:
        return DifficultyBucketRow(
            kind=kind,
            bucket_min=bucket_min,
            bucket_max=bucket_max,
            guess_rate=guess_rate,
            guess_count=guess_count,
        )

    return _factory
