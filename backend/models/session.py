from dataclasses import dataclass, field
from datetime import datetime

DEFAULT_CATEGORY = "Stream"


@dataclass
class StreamSession:
    channel_id: str
    start_time: datetime
    current_category: str = DEFAULT_CATEGORY
    last_segment_start: datetime | None = None   # start of the open segment
    end_time: datetime | None = None
    clip_ids: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.last_segment_start is None:
            self.last_segment_start = self.start_time

    @property
    def is_live(self) -> bool:
        return self.end_time is None
