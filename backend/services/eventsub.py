"""Twitch EventSub webhook signature verification."""

from __future__ import annotations

import hashlib
import hmac
import re
from datetime import datetime, timezone

from services.errors import SignatureInvalid

MAX_MESSAGE_AGE_SECONDS = 600
SIGNATURE_PREFIX = "sha256="

# Twitch sends nanosecond precision; fromisoformat stops at microseconds.
_FRACTION = re.compile(r"\.(\d{6})\d+")


def parse_message_timestamp(raw: str) -> datetime:
    value = _FRACTION.sub(r".\1", raw.strip())
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def compute_signature(secret: str, message_id: str, timestamp: str, body: bytes) -> str:
    message = message_id.encode("utf-8") + timestamp.encode("utf-8") + body
    digest = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(
    secret: str,
    *,
    message_id: str | None,
    timestamp: str | None,
    signature: str | None,
    body: bytes,
    now: datetime | None = None,
) -> None:
    """Raise SignatureInvalid unless the headers carry a fresh, matching HMAC for body."""
    if not message_id or not timestamp or not signature:
        raise SignatureInvalid("Missing signature headers")
    try:
        sent_at = parse_message_timestamp(timestamp)
    except ValueError as exc:
        raise SignatureInvalid("Malformed message timestamp") from exc
    now = now or datetime.now(timezone.utc)
    if abs((now - sent_at).total_seconds()) > MAX_MESSAGE_AGE_SECONDS:
        raise SignatureInvalid("Timestamp too old")
    expected = compute_signature(secret, message_id, timestamp, body)
    if not hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8")):
        raise SignatureInvalid()
