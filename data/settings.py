"""Runtime settings and logging setup.

Settings resolve from the environment once per process. The base URL falls
back through ``SONG_STATS_API_URL`` → ``API_BASE_URL`` → localhost so the
same page works against a local backend and a deployed one.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_DEFAULT_API_URL = "http://localhost:8080"
_DEFAULT_ASSET_HOST = "https://files.catbox.moe"
_DEFAULT_TIMEOUT = 10.0


@dataclass(frozen=True)
class Settings:
    """Connection and presentation settings for the dashboard.

    Attributes
    ----------
    api_url : str
        Base URL of the song statistics backend, without trailing slash.
    timeout : float
        Per-request timeout in seconds.
    asset_host : str
        Static host serving song audio/video files; detail links are
        ``<asset_host>/<value>``.
    log_level : str
        Root logging level name.
    """

    api_url: str = _DEFAULT_API_URL
    timeout: float = _DEFAULT_TIMEOUT
    asset_host: str = _DEFAULT_ASSET_HOST
    log_level: str = "INFO"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logging.getLogger(__name__).warning("Ignoring non-numeric %s=%r", name, raw)
        return default


def load_settings() -> Settings:
    """Build Settings from environment variables."""
    api_url = (
        os.getenv("SONG_STATS_API_URL")
        or os.getenv("API_BASE_URL")
        or _DEFAULT_API_URL
    ).rstrip("/")
    asset_host = (os.getenv("SONG_STATS_ASSET_HOST") or _DEFAULT_ASSET_HOST).rstrip("/")
    return Settings(
        api_url=api_url,
        timeout=_env_float("SONG_STATS_TIMEOUT", _DEFAULT_TIMEOUT),
        asset_host=asset_host,
        log_level=os.getenv("SONG_STATS_LOG_LEVEL", "INFO"),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
