"""Clip selection for a recap."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from models import MAX_RECAP_CLIPS, Clip
from services.errors import NoClipsError, NoRelevantClipsError


def cutoff_for(now: datetime, minutes_late: int) -> datetime:
    """now - minutes_late minutes, clamped to the earliest datetime when that is out of range."""
    try:
        return now - timedelta(milliseconds=minutes_late * 60_000)
    except OverflowError:
        return datetime.min.replace(tzinfo=now.tzinfo or timezone.utc)


def select_clips(
    clips: Sequence[Clip],
    minutes_late: int,
    now: datetime,
    *,
    limit: int = MAX_RECAP_CLIPS,
) -> list[Clip]:
    """
    Pick the clips a viewer `minutes_late` behind has missed.

    Keeps clips that started strictly before now - minutes_late, most recent
    first, at most `limit` of them. Deterministic for identical inputs.
    """
    if not clips:
        raise NoClipsError()
    cutoff = cutoff_for(now, minutes_late)
    relevant = [clip for clip in clips if clip.start_time < cutoff]
    if not relevant:
        raise NoRelevantClipsError()
    # sorted() is stable, so clips sharing a start time keep store order.
    relevant = sorted(relevant, key=lambda clip: clip.start_time, reverse=True)
    return relevant[:limit]
