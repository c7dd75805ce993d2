"""Stream session and clip REST API."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, field_validator

from app.dependencies import get_store
from models import Clip
from services.store import ChannelStore

router = APIRouter(tags=["streams"])
logger = logging.getLogger(__name__)


class StreamStartResponse(BaseModel):
    success: bool = True
    start_time: datetime


class StreamEndResponse(BaseModel):
    success: bool = True


class StreamInfoResponse(BaseModel):
    channel_id: str
    start_time: datetime
    current_category: str
    clips_count: int


class ClipOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    channel_id: str
    category: str
    title: str
    start_time: datetime
    end_time: datetime
    created_at: datetime
    processed: bool


class ClipCreateRequest(BaseModel):
    category: str
    title: str
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        """Naive timestamps are taken as UTC so they compare with server time."""
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class ClipCreateResponse(BaseModel):
    success: bool = True
    clip: ClipOut


def _clip_out(clip: Clip) -> ClipOut:
    return ClipOut.model_validate(clip)


@router.post("/stream/{channel_id}/start", response_model=StreamStartResponse)
def start_stream(channel_id: str, store: ChannelStore = Depends(get_store)) -> StreamStartResponse:
    session = store.start_stream(channel_id)
    return StreamStartResponse(start_time=session.start_time)


@router.post("/stream/{channel_id}/end", response_model=StreamEndResponse)
def end_stream(channel_id: str, store: ChannelStore = Depends(get_store)) -> StreamEndResponse:
    store.end_stream(channel_id)
    return StreamEndResponse()


@router.get("/stream/{channel_id}/info", response_model=StreamInfoResponse)
def stream_info(channel_id: str, store: ChannelStore = Depends(get_store)) -> StreamInfoResponse:
    session = store.get_session(channel_id)
    return StreamInfoResponse(
        channel_id=channel_id,
        start_time=session.start_time,
        current_category=session.current_category,
        clips_count=len(session.clip_ids),
    )


@router.post("/stream/{channel_id}/clip", response_model=ClipCreateResponse)
def create_clip(
    channel_id: str,
    body: ClipCreateRequest,
    store: ChannelStore = Depends(get_store),
) -> ClipCreateResponse:
    clip = store.create_clip(
        channel_id,
        category=body.category,
        title=body.title,
        start_time=body.start_time,
        end_time=body.end_time,
    )
    return ClipCreateResponse(clip=_clip_out(clip))


@router.get("/stream/{channel_id}/clips", response_model=list[ClipOut])
def list_clips(channel_id: str, store: ChannelStore = Depends(get_store)) -> list[ClipOut]:
    return [_clip_out(clip) for clip in store.list_clips(channel_id)]
