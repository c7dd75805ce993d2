"""Retention sweep: delete generated recaps older than the configured maximum age."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

from services.coordinator import RecapCoordinator

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_SECONDS = 24 * 3600
DEFAULT_INTERVAL_SECONDS = 3600.0


class RetentionSweeper:
    def __init__(
        self,
        videos_dir: Path,
        coordinator: RecapCoordinator,
        *,
        max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self._videos_dir = videos_dir
        self._coordinator = coordinator
        self._max_age = max_age_seconds
        self._interval = interval_seconds

    def sweep(self, max_age_seconds: int | None = None, *, now: float | None = None) -> int:
        """
        Delete artifacts whose mtime is more than max_age_seconds old. Returns the deletion count.

        Artifacts still being generated are skipped. A failed stat or unlink is
        logged and the sweep moves on to the next file. Runs without awaiting,
        so it cannot interleave with the coordinator's check-and-mark.
        """
        max_age = self._max_age if max_age_seconds is None else max_age_seconds
        now = time.time() if now is None else now
        try:
            candidates = sorted(p for p in self._videos_dir.iterdir() if p.is_file())
        except FileNotFoundError:
            return 0
        except OSError as exc:
            logger.error("[retention] Cannot list %s: %s", self._videos_dir, exc)
            return 0

        deleted = 0
        for path in candidates:
            if self._coordinator.is_in_flight(path.name):
                continue
            try:
                age = now - path.stat().st_mtime
                if age <= max_age:
                    continue
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("[retention] Could not delete %s: %s", path.name, exc)
                continue
            self._coordinator.evict(path.name)
            deleted += 1
            logger.info("[retention] Deleted %s (age %.0fs)", path.name, age)
        if deleted:
            logger.info("[retention] Sweep removed %d artifact(s)", deleted)
        return deleted

    async def run(self) -> None:
        """Sweep every interval until cancelled."""
        logger.info(
            "[retention] Sweeper started: every %.0fs, max age %ds", self._interval, self._max_age
        )
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.sweep()
            except Exception:  # noqa: BLE001
                logger.exception("[retention] Sweep failed")
