from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from .clip import Clip

MAX_RECAP_SECONDS = 60     # hard cap on recap runtime
MAX_RECAP_CLIPS = 5


@dataclass(frozen=True)
class RecapKey:
    """What recap is wanted: channel, lateness and the cache time bucket."""

    channel_id: str
    minutes_late: int
    time_bucket: int           # bucket start, epoch milliseconds

    @property
    def artifact_id(self) -> str:
        return f"{self.channel_id}_{self.minutes_late}min_{self.time_bucket}"

    @property
    def filename(self) -> str:
        return f"{self.artifact_id}.mp4"


@dataclass(frozen=True)
class ManifestEntry:
    clip: Clip
    duration_seconds: int
    media_path: Path | None = None   # set once the media source resolved it


@dataclass(frozen=True)
class Manifest:
    entries: tuple[ManifestEntry, ...]
    duration_per_clip: int

    @property
    def total_duration_seconds(self) -> int:
        return sum(entry.duration_seconds for entry in self.entries)

    @property
    def is_resolved(self) -> bool:
        return all(entry.media_path is not None for entry in self.entries)


@dataclass(frozen=True)
class Artifact:
    id: str
    key: RecapKey
    file_path: Path
    size_bytes: int
    duration_seconds: int
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def url(self) -> str:
        return f"/videos/{self.file_path.name}"


@dataclass(frozen=True)
class RecapOutcome:
    """Result of one recap request: an artifact, or the error that stopped it."""

    artifact: Artifact | None = None
    cached: bool = False
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.artifact is not None and self.error is None
