import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class Clip:
    channel_id: str
    category: str
    title: str
    start_time: datetime       # segment start
    end_time: datetime         # segment end, strictly after start_time
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    processed: bool = False    # media rendered at least once

    def __post_init__(self) -> None:
        if self.start_time >= self.end_time:
            raise ValueError(
                f"clip start_time {self.start_time.isoformat()} must be before end_time {self.end_time.isoformat()}"
            )
