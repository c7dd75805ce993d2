"""Recap generation coordinator: artifact cache, in-flight deduplication, and the generate pipeline."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path

import av
from av.error import FFmpegError

from models import MAX_RECAP_SECONDS, Artifact, RecapKey, RecapOutcome
from services.encoder import FFmpegEncoder
from services.errors import GenerationTimeout, RecapError, ValidationError
from services.manifest import build_manifest, with_media
from services.media_source import MediaSource
from services.selector import select_clips
from services.store import ChannelStore

logger = logging.getLogger(__name__)


def probe_duration(path: Path) -> int:
    """Container duration in whole seconds (0 when the container does not report one)."""
    with av.open(str(path)) as container:
        if container.duration is None:
            return 0
        return int(container.duration / av.time_base)


class RecapCoordinator:
    """
    Owns the per-key lifecycle Idle -> InFlight -> Done | Failed.

    The cache and the in-flight map are only touched from the event loop and
    never across an await between check and update, so the check-and-mark in
    get_or_create_recap is atomic with respect to other requests.
    """

    def __init__(
        self,
        store: ChannelStore,
        media_source: MediaSource,
        encoder: FFmpegEncoder,
        *,
        videos_dir: Path,
        cache_bucket_seconds: int = 60,
        wait_timeout_seconds: float = 120.0,
    ) -> None:
        if cache_bucket_seconds <= 0:
            raise ValueError("cache_bucket_seconds must be positive")
        self._store = store
        self._media = media_source
        self._encoder = encoder
        self._videos_dir = videos_dir
        self._bucket_ms = cache_bucket_seconds * 1000
        self._wait_timeout = wait_timeout_seconds
        self._cache: dict[RecapKey, Artifact] = {}
        self._in_flight: dict[RecapKey, asyncio.Future[Artifact]] = {}

    def key_for(self, channel_id: str, minutes_late: int, now: datetime) -> RecapKey:
        epoch_ms = int(now.timestamp() * 1000)
        return RecapKey(
            channel_id=channel_id,
            minutes_late=minutes_late,
            time_bucket=epoch_ms - epoch_ms % self._bucket_ms,
        )

    def artifact_path(self, key: RecapKey) -> Path:
        return self._videos_dir / key.filename

    async def get_or_create_recap(
        self,
        channel_id: str,
        minutes_late: int,
        *,
        now: datetime | None = None,
    ) -> RecapOutcome:
        """Return the recap for (channel, minutes_late, time bucket), generating it at most once."""
        if minutes_late < 0:
            return RecapOutcome(error=ValidationError("minutesLate must be a non-negative integer"))
        now = now or datetime.now(timezone.utc)
        key = self.key_for(channel_id, minutes_late, now)

        cached = self._lookup_cached(key)
        if cached is not None:
            logger.info("[coordinator] Cache hit: %s", key.artifact_id)
            return RecapOutcome(artifact=cached, cached=True)

        pending = self._in_flight.get(key)
        if pending is not None:
            logger.info("[coordinator] Waiting on in-flight generation: %s", key.artifact_id)
            return await self._wait_for(key, pending)

        future: asyncio.Future[Artifact] = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        logger.info("[coordinator] Generating: %s", key.artifact_id)
        try:
            artifact = await self._generate(key, now)
            self._cache[key] = artifact
            future.set_result(artifact)
            return RecapOutcome(artifact=artifact, cached=False)
        except RecapError as exc:
            logger.warning("[coordinator] Generation failed for %s: %s", key.artifact_id, exc)
            self._settle(future, exc)
            return RecapOutcome(error=exc)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception:
            logger.exception("[coordinator] Unexpected error generating %s", key.artifact_id)
            error = RecapError()
            self._settle(future, error)
            return RecapOutcome(error=error)
        finally:
            self._in_flight.pop(key, None)

    async def _generate(self, key: RecapKey, now: datetime) -> Artifact:
        clips = self._store.list_clips(key.channel_id)
        selected = select_clips(clips, key.minutes_late, now)
        manifest = build_manifest(selected)
        logger.info(
            "[coordinator] %s: %d clips, %ds per clip",
            key.artifact_id,
            len(selected),
            manifest.duration_per_clip,
        )
        media_paths = [
            await self._media.resolve(entry.clip, entry.duration_seconds) for entry in manifest.entries
        ]
        manifest = with_media(manifest, media_paths)
        result = await self._encoder.encode(manifest, self.artifact_path(key), job_name=key.artifact_id)
        return Artifact(
            id=key.artifact_id,
            key=key,
            file_path=result.output_path,
            size_bytes=result.size_bytes,
            duration_seconds=result.duration_seconds,
        )

    async def _wait_for(self, key: RecapKey, pending: asyncio.Future[Artifact]) -> RecapOutcome:
        # shield: a waiter timing out must not cancel the shared generation.
        try:
            artifact = await asyncio.wait_for(asyncio.shield(pending), timeout=self._wait_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "[coordinator] Gave up waiting on %s after %.1fs", key.artifact_id, self._wait_timeout
            )
            return RecapOutcome(error=GenerationTimeout())
        except RecapError as exc:
            return RecapOutcome(error=exc)
        except asyncio.CancelledError:
            if pending.cancelled():
                return RecapOutcome(error=RecapError("Recap generation was cancelled"))
            raise
        return RecapOutcome(artifact=artifact, cached=False)

    @staticmethod
    def _settle(future: asyncio.Future[Artifact], exc: BaseException) -> None:
        if future.done():
            return
        future.set_exception(exc)
        # Mark retrieved so a failure nobody waited on is not reported by the loop.
        future.exception()

    def _lookup_cached(self, key: RecapKey) -> Artifact | None:
        artifact = self._cache.get(key)
        if artifact is not None:
            if artifact.file_path.exists():
                return artifact
            # Swept or removed by an operator.
            self._cache.pop(key, None)
        if key in self._in_flight:
            return None
        path = self.artifact_path(key)
        if not path.exists():
            return None
        # Synchronous probe: no await may run between this lookup and the in-flight mark.
        try:
            duration = probe_duration(path)
            stat = path.stat()
        except (FFmpegError, OSError) as exc:
            logger.warning("[coordinator] Ignoring unreadable artifact %s: %s", path.name, exc)
            return None
        artifact = Artifact(
            id=key.artifact_id,
            key=key,
            file_path=path,
            size_bytes=stat.st_size,
            duration_seconds=min(duration, MAX_RECAP_SECONDS),
            created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )
        self._cache[key] = artifact
        logger.info("[coordinator] Adopted artifact from disk: %s", path.name)
        return artifact

    def is_in_flight(self, filename: str) -> bool:
        """True when an artifact with this file name is currently being generated."""
        return any(key.filename == filename for key in self._in_flight)

    def evict(self, filename: str) -> None:
        """Drop cache entries pointing at filename (after the file was deleted)."""
        for key in [k for k, a in self._cache.items() if a.file_path.name == filename]:
            self._cache.pop(key, None)

    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def cached_artifact_count(self) -> int:
        if not self._videos_dir.exists():
            return 0
        return sum(1 for path in self._videos_dir.glob("*.mp4") if path.is_file())
