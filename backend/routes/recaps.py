"""Recap video API. GET /api/stream/{channel_id}/recap?minutesLate=N."""

import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.dependencies import get_coordinator
from models import Artifact
from services.coordinator import RecapCoordinator
from services.errors import RecapError, ValidationError

router = APIRouter(tags=["recaps"])
logger = logging.getLogger(__name__)


class RecapResponse(BaseModel):
    id: str
    url: str
    size_bytes: int
    duration_seconds: int
    cached: bool


def parse_minutes_late(raw: str | None) -> int:
    if raw is None or not raw.strip():
        raise ValidationError("minutesLate required")
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValidationError("minutesLate must be an integer") from None
    if value < 0:
        raise ValidationError("minutesLate must be a non-negative integer")
    return value


def _recap_response(artifact: Artifact, cached: bool) -> RecapResponse:
    return RecapResponse(
        id=artifact.id,
        url=artifact.url,
        size_bytes=artifact.size_bytes,
        duration_seconds=artifact.duration_seconds,
        cached=cached,
    )


@router.get("/stream/{channel_id}/recap", response_model=RecapResponse)
async def get_recap(
    channel_id: str,
    minutes_late: str | None = Query(None, alias="minutesLate"),
    coordinator: RecapCoordinator = Depends(get_coordinator),
) -> RecapResponse:
    """Recap of what a viewer `minutesLate` behind has missed; generated once per cache bucket."""
    minutes = parse_minutes_late(minutes_late)
    outcome = await coordinator.get_or_create_recap(channel_id, minutes)
    if outcome.error is not None:
        if isinstance(outcome.error, RecapError):
            raise outcome.error
        raise RecapError()
    assert outcome.artifact is not None
    logger.info("[recaps] channel=%s minutesLate=%d -> %s cached=%s", channel_id, minutes, outcome.artifact.id, outcome.cached)
    return _recap_response(outcome.artifact, outcome.cached)
