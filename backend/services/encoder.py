"""Drives ffmpeg's concat demuxer over a resolved manifest to produce one recap MP4."""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path

from models import Manifest
from services.errors import EncodingFailure
from services.manifest import render_concat_list

logger = logging.getLogger(__name__)

VIDEO_CODEC = "libx264"
VIDEO_PRESET = "ultrafast"
VIDEO_CRF = 28
AUDIO_CODEC = "aac"
AUDIO_BITRATE = "128k"
STDERR_TAIL_CHARS = 2000


@dataclass(frozen=True)
class EncodeResult:
    output_path: Path
    size_bytes: int
    duration_seconds: int


def remove_quietly(path: Path) -> None:
    """Best-effort delete: a failure is logged, never raised."""
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("[encoder] Cleanup of %s failed: %s", path, exc)


class FFmpegEncoder:
    def __init__(
        self,
        *,
        temp_dir: Path,
        ffmpeg_binary: str = "ffmpeg",
        timeout_seconds: float | None = None,
    ) -> None:
        self._temp_dir = temp_dir
        self._ffmpeg = ffmpeg_binary
        self._timeout = timeout_seconds

    def build_command(self, list_file: Path, output_path: Path) -> list[str]:
        return [
            self._ffmpeg,
            "-hide_banner",
            "-nostdin",
            "-f",
            "concat",
            "-safe",
            "0",
            "-i",
            list_file.as_posix(),
            "-c:v",
            VIDEO_CODEC,
            "-preset",
            VIDEO_PRESET,
            "-crf",
            str(VIDEO_CRF),
            "-c:a",
            AUDIO_CODEC,
            "-b:a",
            AUDIO_BITRATE,
            "-y",
            output_path.as_posix(),
        ]

    async def encode(self, manifest: Manifest, output_path: Path, *, job_name: str) -> EncodeResult:
        """
        Encode `manifest` into output_path.

        The concat list and the in-progress output live in the temp dir under
        names derived from job_name; the output is moved to output_path only
        when ffmpeg exits 0. The list file is removed on every exit path.
        """
        if not manifest.is_resolved:
            raise ValueError("manifest has unresolved media paths")
        self._temp_dir.mkdir(parents=True, exist_ok=True)
        list_file = self._temp_dir / f"{job_name}_list.txt"
        partial = self._temp_dir / f"{job_name}.partial.mp4"
        list_file.write_text(render_concat_list(manifest), encoding="utf-8")
        try:
            returncode, stderr = await self._run(self.build_command(list_file, partial))
            if returncode != 0:
                logger.warning(
                    "[encoder] ffmpeg exited %s for %s: %s",
                    returncode,
                    job_name,
                    stderr[-STDERR_TAIL_CHARS:].strip() or "(no stderr)",
                )
                raise EncodingFailure(returncode)
            if stderr:
                logger.debug("[encoder] ffmpeg output for %s: %s", job_name, stderr[-STDERR_TAIL_CHARS:])
            output_path.parent.mkdir(parents=True, exist_ok=True)
            os.replace(partial, output_path)
        finally:
            remove_quietly(list_file)
            remove_quietly(partial)

        size = output_path.stat().st_size
        logger.info(
            "[encoder] Encoded %s (%d bytes, %ds)", output_path.name, size, manifest.total_duration_seconds
        )
        return EncodeResult(
            output_path=output_path,
            size_bytes=size,
            duration_seconds=manifest.total_duration_seconds,
        )

    async def _run(self, cmd: list[str]) -> tuple[int, str]:
        logger.info("[encoder] Running: %s", " ".join(cmd))
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise EncodingFailure(None, f"Encoder binary not found: {self._ffmpeg}") from exc

        try:
            if self._timeout is None:
                _, stderr = await proc.communicate()
            else:
                _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError:
            await self._kill(proc)
            logger.error("[encoder] ffmpeg killed after %.0fs", self._timeout)
            raise EncodingFailure(proc.returncode, f"Encoder timed out after {self._timeout:.0f}s") from None
        except asyncio.CancelledError:
            await self._kill(proc)
            raise
        return proc.returncode, (stderr or b"").decode("utf-8", errors="replace")

    @staticmethod
    async def _kill(proc: asyncio.subprocess.Process) -> None:
        with suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
