"""EventSub webhook receiver: a category change closes the current segment as a clip."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from app.config import Settings
from app.dependencies import get_settings, get_store
from services.errors import ValidationError
from services.eventsub import verify_signature
from services.store import ChannelStore

router = APIRouter(tags=["webhooks"])
logger = logging.getLogger(__name__)

HEADER_MESSAGE_ID = "Twitch-Eventsub-Message-Id"
HEADER_TIMESTAMP = "Twitch-Eventsub-Message-Timestamp"
HEADER_SIGNATURE = "Twitch-Eventsub-Message-Signature"
HEADER_MESSAGE_TYPE = "Twitch-Eventsub-Message-Type"
CALLBACK_VERIFICATION = "webhook_callback_verification"
NOTIFICATION = "notification"


@router.post("/webhooks/twitch/category-change", response_model=None)
async def category_change(
    request: Request,
    settings: Settings = Depends(get_settings),
    store: ChannelStore = Depends(get_store),
) -> dict[str, Any] | PlainTextResponse:
    body = await request.body()
    if settings.eventsub_secret:
        verify_signature(
            settings.eventsub_secret,
            message_id=request.headers.get(HEADER_MESSAGE_ID),
            timestamp=request.headers.get(HEADER_TIMESTAMP),
            signature=request.headers.get(HEADER_SIGNATURE),
            body=body,
        )
    else:
        logger.warning("[webhooks] EventSub secret not configured; signature not checked")

    try:
        payload = json.loads(body) if body else {}
    except json.JSONDecodeError:
        raise ValidationError("Body is not valid JSON") from None
    if not isinstance(payload, dict):
        raise ValidationError("Body must be a JSON object")

    subscription = payload.get("subscription") or {}
    if (
        request.headers.get(HEADER_MESSAGE_TYPE) == CALLBACK_VERIFICATION
        or subscription.get("status") == CALLBACK_VERIFICATION
    ):
        logger.info("[webhooks] Challenge received")
        return PlainTextResponse(str(payload.get("challenge", "")))

    message_type = request.headers.get(HEADER_MESSAGE_TYPE)
    if message_type and message_type != NOTIFICATION:
        logger.info(
            "[webhooks] Acknowledged %s message (subscription status=%s)",
            message_type,
            subscription.get("status"),
        )
        return {"success": True, "clip_id": None}

    event = payload.get("event") or {}
    channel_id = event.get("broadcaster_user_id")
    new_category = event.get("category_name")
    if not channel_id or not new_category:
        raise ValidationError("event.broadcaster_user_id and event.category_name are required")
    old_category = event.get("category_name_old")
    logger.info("[webhooks] Category changed: %s -> %s (channel=%s)", old_category, new_category, channel_id)
    clip = store.change_category(str(channel_id), str(new_category), old_category=old_category)
    return {"success": True, "clip_id": clip.id if clip else None}
