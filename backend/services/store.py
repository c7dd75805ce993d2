"""In-memory channel store: stream sessions and their clips. Keyed by channel ID.

One instance per process, created by the application factory and shared by
reference. Nothing is persisted across restarts.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from models import DEFAULT_CATEGORY, Clip, StreamSession
from services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChannelStore:
    def __init__(self) -> None:
        self._sessions: dict[str, StreamSession] = {}
        self._clips: dict[str, list[Clip]] = {}

    def start_stream(self, channel_id: str, *, now: datetime | None = None) -> StreamSession:
        """Open a new session for the channel, replacing any previous one."""
        started = now or _utcnow()
        session = StreamSession(channel_id=channel_id, start_time=started)
        self._sessions[channel_id] = session
        logger.info("[store] Stream started: channel=%s", channel_id)
        return session

    def end_stream(self, channel_id: str, *, now: datetime | None = None) -> StreamSession:
        session = self.get_session(channel_id)
        session.end_time = now or _utcnow()
        logger.info("[store] Stream ended: channel=%s", channel_id)
        return session

    def get_session(self, channel_id: str) -> StreamSession:
        session = self._sessions.get(channel_id)
        if session is None:
            raise NotFoundError("Stream not found")
        return session

    def session_count(self) -> int:
        return len(self._sessions)

    def create_clip(
        self,
        channel_id: str,
        *,
        category: str,
        title: str,
        start_time: datetime,
        end_time: datetime,
    ) -> Clip:
        try:
            clip = Clip(
                channel_id=channel_id,
                category=category,
                title=title,
                start_time=start_time,
                end_time=end_time,
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        self._clips.setdefault(channel_id, []).append(clip)
        session = self._sessions.get(channel_id)
        if session is not None:
            session.clip_ids.append(clip.id)
        logger.info("[store] Clip created: channel=%s title=%s id=%s", channel_id, clip.title, clip.id)
        return clip

    def list_clips(self, channel_id: str) -> list[Clip]:
        """Clips for the channel in creation order. Returns a copy."""
        return list(self._clips.get(channel_id, []))

    def record_segment(
        self,
        channel_id: str,
        category: str,
        segment_start: datetime,
        segment_end: datetime,
    ) -> Clip:
        """Store one finished segment as a clip and move the session's segment start forward."""
        clip = self.create_clip(
            channel_id,
            category=category,
            title=category,
            start_time=segment_start,
            end_time=segment_end,
        )
        session = self._sessions.get(channel_id)
        if session is not None:
            session.last_segment_start = segment_end
        return clip

    def change_category(
        self,
        channel_id: str,
        new_category: str,
        *,
        old_category: str | None = None,
        now: datetime | None = None,
    ) -> Clip | None:
        """
        Close the open segment as a clip and start a new one under new_category.

        Unknown channels are ignored (returns None): a category change for a
        stream we never saw start has no segment boundary to close.
        """
        session = self._sessions.get(channel_id)
        if session is None:
            logger.warning("[store] Category change for unknown channel=%s ignored", channel_id)
            return None
        changed_at = now or _utcnow()
        category = old_category or session.current_category or DEFAULT_CATEGORY
        clip: Clip | None = None
        if session.last_segment_start is not None and session.last_segment_start < changed_at:
            clip = self.record_segment(channel_id, category, session.last_segment_start, changed_at)
        else:
            # Zero-length segment: nothing to clip, just move the boundary.
            session.last_segment_start = changed_at
        session.current_category = new_category
        logger.info(
            "[store] Category changed: channel=%s %s -> %s",
            channel_id,
            category,
            new_category,
        )
        return clip
