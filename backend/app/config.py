"""Runtime settings read from the environment (and backend/.env when present)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

BACKEND_DIR = Path(__file__).resolve().parent.parent

DEFAULT_CACHE_BUCKET_SECONDS = 60
DEFAULT_WAIT_TIMEOUT_SECONDS = 120.0
DEFAULT_RETENTION_MAX_AGE_SECONDS = 24 * 3600
DEFAULT_SWEEP_INTERVAL_SECONDS = 3600.0
DEFAULT_PORT = 3000


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, "").strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    return int(raw) if raw else default


def _env_float(name: str, default: float | None) -> float | None:
    raw = os.environ.get(name, "").strip()
    return float(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    data_dir: Path = BACKEND_DIR
    cache_bucket_seconds: int = DEFAULT_CACHE_BUCKET_SECONDS
    wait_timeout_seconds: float = DEFAULT_WAIT_TIMEOUT_SECONDS
    encode_timeout_seconds: float | None = None
    retention_max_age_seconds: int = DEFAULT_RETENTION_MAX_AGE_SECONDS
    sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS
    ffmpeg_binary: str = "ffmpeg"
    eventsub_secret: str | None = None
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT

    @property
    def videos_dir(self) -> Path:
        return self.data_dir / "videos"

    @property
    def clips_dir(self) -> Path:
        return self.data_dir / "clips"

    @property
    def temp_dir(self) -> Path:
        return self.data_dir / "temp"

    def ensure_directories(self) -> None:
        for directory in (self.videos_dir, self.clips_dir, self.temp_dir):
            directory.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    load_dotenv(BACKEND_DIR / ".env")
    cache_bucket_seconds = _env_int("RECAP_CACHE_BUCKET_SECONDS", DEFAULT_CACHE_BUCKET_SECONDS)
    if cache_bucket_seconds <= 0:
        raise ValueError("RECAP_CACHE_BUCKET_SECONDS must be positive")
    return Settings(
        data_dir=Path(_env_str("RECAP_DATA_DIR", str(BACKEND_DIR))),
        cache_bucket_seconds=cache_bucket_seconds,
        wait_timeout_seconds=_env_float("RECAP_WAIT_TIMEOUT_SECONDS", DEFAULT_WAIT_TIMEOUT_SECONDS),
        encode_timeout_seconds=_env_float("RECAP_ENCODE_TIMEOUT_SECONDS", None),
        retention_max_age_seconds=_env_int(
            "RECAP_RETENTION_MAX_AGE_SECONDS", DEFAULT_RETENTION_MAX_AGE_SECONDS
        ),
        sweep_interval_seconds=_env_float("RECAP_SWEEP_INTERVAL_SECONDS", DEFAULT_SWEEP_INTERVAL_SECONDS),
        ffmpeg_binary=_env_str("FFMPEG_BINARY", "ffmpeg"),
        eventsub_secret=os.environ.get("TWITCH_EVENTSUB_SECRET", "").strip() or None,
        host=_env_str("HOST", "0.0.0.0"),
        port=_env_int("PORT", DEFAULT_PORT),
    )
