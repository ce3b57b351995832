"""Typed response rows, one model per backend endpoint.

All models are frozen pydantic models in strict mode: an integer field rejects
``1.5`` instead of truncating it, a number field rejects booleans, and counts
must be non-negative.  data.fetcher validates whole payloads through the
TypeAdapters below and turns ``ValidationError`` into ResponseShapeError.
"""

from __future__ import annotations

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    NonNegativeInt,
    TypeAdapter,
    field_validator,
    model_validator,
)

_ROW_CONFIG = ConfigDict(frozen=True, strict=True, extra="ignore")


# ---------------------------------------------------------------------------
# /query and /songquery/{id}
# ---------------------------------------------------------------------------

class SongRow(BaseModel):
    """One search result: ``[song_id, song_name, artist, anime, difficulty]``."""

    model_config = _ROW_CONFIG

    song_id: str
    song_name: str
    artist: str
    anime: str
    difficulty: float | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_tuple(cls, raw: Any) -> Any:
        if isinstance(raw, (list, tuple)):
            if len(raw) != 5:
                raise ValueError(f"search row must have 5 fields, got {len(raw)}")
            return dict(zip(("song_id", "song_name", "artist", "anime", "difficulty"), raw))
        return raw

    @field_validator("song_id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        # ids arrive as JSON numbers or strings
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class SongDetail(BaseModel):
    """Attribute pairs for one song, in the order the backend sent them."""

    model_config = ConfigDict(frozen=True, strict=True)

    song_id: str
    attributes: tuple[tuple[str, str], ...] = ()

    @field_validator("attributes", mode="before")
    @classmethod
    def _pairs(cls, raw: Any) -> Any:
        if not isinstance(raw, (list, tuple)):
            return raw
        pairs = []
        for item in raw:
            if not isinstance(item, (list, tuple)) or len(item) != 2:
                raise ValueError(f"detail attribute must be a [key, value] pair, got {item!r}")
            key, value = item
            pairs.append((key, "" if value is None else str(value)))
        return tuple(pairs)

    @classmethod
    def from_json(cls, song_id: str, raw: Any) -> "SongDetail":
        return cls.model_validate({"song_id": str(song_id), "attributes": raw})


# ---------------------------------------------------------------------------
# /stats/*
# ---------------------------------------------------------------------------

class VintageStatRow(BaseModel):
    model_config = _ROW_CONFIG

    kind: str
    vintage: str
    guess_rate: float | None
    guess_count: NonNegativeInt
    times_played: NonNegativeInt


class DifficultyBinRow(BaseModel):
    """Equal-width difficulty bin; ``diff_bin`` is 1-indexed."""

    model_config = _ROW_CONFIG

    diff_bin: int | None
    guess_rate: float | None
    guess_count: NonNegativeInt
    times_played: NonNegativeInt = 0


class DifficultyBucketRow(BaseModel):
    """Equal-population difficulty bucket with explicit bounds (0–100 scale)."""

    model_config = _ROW_CONFIG

    kind: str
    bucket_min: float | None
    bucket_max: float | None
    guess_rate: float | None
    guess_count: NonNegativeInt
    bucket: int | None = None


SONG_ROWS = TypeAdapter(list[SongRow])
VINTAGE_ROWS = TypeAdapter(list[VintageStatRow])
DIFFICULTY_ROWS = TypeAdapter(list[DifficultyBinRow])
BUCKET_ROWS = TypeAdapter(list[DifficultyBucketRow])
