"""Manifest construction: selected clips -> ordered playback list with durations."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from models import MAX_RECAP_SECONDS, Clip, Manifest, ManifestEntry
from services.errors import NoRelevantClipsError

RECAP_LENGTH_MS = MAX_RECAP_SECONDS * 1000


def duration_per_clip(count: int) -> int:
    """
    Whole seconds each of `count` clips gets out of the recap length cap.

    Floors twice (cap/count in ms, then to seconds) and is not corrected
    afterwards, so the total may come out below the cap.
    """
    if count <= 0:
        raise ValueError("count must be positive")
    per_clip_ms = RECAP_LENGTH_MS // count
    return per_clip_ms // 1000


def build_manifest(selected: Sequence[Clip]) -> Manifest:
    """One entry per selected clip, same order, uniform duration."""
    if not selected:
        raise NoRelevantClipsError()
    per_clip = duration_per_clip(len(selected))
    entries = tuple(ManifestEntry(clip=clip, duration_seconds=per_clip) for clip in selected)
    return Manifest(entries=entries, duration_per_clip=per_clip)


def with_media(manifest: Manifest, media_paths: Sequence[Path]) -> Manifest:
    """Attach resolved media paths, one per entry, in manifest order."""
    if len(media_paths) != len(manifest.entries):
        raise ValueError(
            f"expected {len(manifest.entries)} media paths, got {len(media_paths)}"
        )
    entries = tuple(
        replace(entry, media_path=Path(path).resolve())
        for entry, path in zip(manifest.entries, media_paths)
    )
    return replace(manifest, entries=entries)


def render_concat_list(manifest: Manifest) -> str:
    """Text for ffmpeg's concat demuxer: a `file`/`duration` pair per entry."""
    lines: list[str] = []
    for entry in manifest.entries:
        if entry.media_path is None:
            raise ValueError(f"clip {entry.clip.id} has no resolved media")
        # concat demuxer quoting: close the quote, escape, reopen.
        quoted = str(entry.media_path).replace("'", "'\\''")
        lines.append(f"file '{quoted}'")
        lines.append(f"duration {entry.duration_seconds}")
    return "\n".join(lines) + "\n"
