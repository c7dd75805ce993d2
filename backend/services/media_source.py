"""Clip media resolution. Ships with a placeholder source that renders blank video plus a tone."""

from __future__ import annotations

import asyncio
import logging
import math
import os
from abc import ABC, abstractmethod
from fractions import Fraction
from pathlib import Path

import av
import numpy as np
from av import AudioFrame, VideoFrame
from av.error import FFmpegError

from models import Clip
from services.errors import MediaUnavailable

logger = logging.getLogger(__name__)

PLACEHOLDER_WIDTH = 1280
PLACEHOLDER_HEIGHT = 720
PLACEHOLDER_FPS = 25
PLACEHOLDER_TONE_HZ = 1000
PLACEHOLDER_SAMPLE_RATE = 48000
VIDEO_CODEC = "libx264"
AUDIO_CODEC = "aac"
AUDIO_FRAME_SAMPLES = 1024   # AAC frame size
PIX_FMT = "yuv420p"


class MediaSource(ABC):
    """Resolves a clip to a local media file the encoder can read."""

    @abstractmethod
    async def resolve(self, clip: Clip, duration_seconds: int) -> Path:
        """Return a path to media for `clip`; raise MediaUnavailable when none can be produced."""


class PlaceholderWriter:
    """
    Renders a blank color frame and a sine tone to an MP4 file.

    Video and audio are interleaved one second at a time. Call write() once.
    """

    def __init__(
        self,
        *,
        width: int = PLACEHOLDER_WIDTH,
        height: int = PLACEHOLDER_HEIGHT,
        fps: int = PLACEHOLDER_FPS,
        tone_hz: int = PLACEHOLDER_TONE_HZ,
        sample_rate: int = PLACEHOLDER_SAMPLE_RATE,
    ) -> None:
        if width % 2 or height % 2:
            raise ValueError("placeholder frame size must be even for yuv420p")
        self._width = width
        self._height = height
        self._fps = fps
        self._tone_hz = tone_hz
        self._sample_rate = sample_rate

    def _blank_frame(self) -> VideoFrame:
        black = np.zeros((self._height, self._width, 3), dtype=np.uint8)
        return VideoFrame.from_ndarray(black, format="rgb24").reformat(format=PIX_FMT)

    def _tone(self, start: int, count: int) -> AudioFrame:
        t = (np.arange(start, start + count, dtype=np.float64)) / self._sample_rate
        wave = (0.5 * np.sin(2 * math.pi * self._tone_hz * t)).astype(np.float32)
        frame = AudioFrame.from_ndarray(np.vstack([wave, wave]), format="fltp", layout="stereo")
        frame.sample_rate = self._sample_rate
        frame.pts = start
        frame.time_base = Fraction(1, self._sample_rate)
        return frame

    def write(self, output_path: Path, duration_seconds: int) -> int:
        """Encode `duration_seconds` of placeholder media to output_path. Returns the frame count."""
        if duration_seconds <= 0:
            raise ValueError("placeholder duration must be positive")
        container = av.open(str(output_path), "w", format="mp4")
        frames = 0
        try:
            video = container.add_stream(VIDEO_CODEC, rate=self._fps)
            video.width = self._width
            video.height = self._height
            video.pix_fmt = PIX_FMT
            video.options = {"preset": "ultrafast"}
            audio = container.add_stream(AUDIO_CODEC, rate=self._sample_rate, layout="stereo")

            blank = self._blank_frame()
            blank.time_base = Fraction(1, self._fps)
            total_samples = duration_seconds * self._sample_rate
            audio_pts = 0
            for second in range(duration_seconds):
                for i in range(self._fps):
                    blank.pts = second * self._fps + i
                    for packet in video.encode(blank):
                        container.mux(packet)
                    frames += 1
                second_end = min((second + 1) * self._sample_rate, total_samples)
                while audio_pts < second_end:
                    count = min(AUDIO_FRAME_SAMPLES, total_samples - audio_pts)
                    for packet in audio.encode(self._tone(audio_pts, count)):
                        container.mux(packet)
                    audio_pts += count
            for packet in video.encode():
                container.mux(packet)
            for packet in audio.encode():
                container.mux(packet)
        finally:
            container.close()
        return frames


class PlaceholderMediaSource(MediaSource):
    """
    Reuses clips/clip_{id}.mp4 when present, otherwise renders a placeholder there.

    Rendering goes to a .partial file that is renamed into place, so a file at
    the canonical path is always complete. One render per clip id at a time.
    """

    def __init__(self, clips_dir: Path, *, writer: PlaceholderWriter | None = None) -> None:
        self._clips_dir = clips_dir
        self._writer = writer or PlaceholderWriter()
        self._locks: dict[str, asyncio.Lock] = {}

    def canonical_path(self, clip: Clip) -> Path:
        return self._clips_dir / f"clip_{clip.id}.mp4"

    async def resolve(self, clip: Clip, duration_seconds: int) -> Path:
        path = self.canonical_path(clip)
        if not path.exists():
            lock = self._locks.setdefault(clip.id, asyncio.Lock())
            async with lock:
                if not path.exists():
                    await asyncio.to_thread(self._render, path, duration_seconds)
        clip.processed = True
        return path

    def _render(self, path: Path, duration_seconds: int) -> None:
        partial = path.with_name(f"{path.stem}.partial{path.suffix}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            frames = self._writer.write(partial, duration_seconds)
            os.replace(partial, path)
        except (FFmpegError, OSError, ValueError) as exc:
            logger.error("[media_source] Placeholder render failed for %s: %s", path.name, exc)
            try:
                partial.unlink(missing_ok=True)
            except OSError as cleanup_exc:
                logger.warning("[media_source] Could not remove %s: %s", partial, cleanup_exc)
            raise MediaUnavailable(f"Could not produce media for clip {path.stem}") from exc
        logger.info("[media_source] Placeholder created: %s (%ds, %d frames)", path.name, duration_seconds, frames)
