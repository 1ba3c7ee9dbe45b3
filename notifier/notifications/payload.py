"""Notification envelope construction."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from notifier.notifications.contracts import DEFAULT_DELIVERY_HINTS, NotificationPayload

TIMESTAMP_KEY = "timestamp"
FALLBACK_TIMESTAMP_KEY = "deliveryTimestamp"


def _utc_now() -> datetime:
  return datetime.now(UTC)


def format_timestamp(moment: datetime) -> str:
  """Render a UTC ISO-8601 timestamp with millisecond precision and a Z suffix."""
  if moment.tzinfo is None:
    moment = moment.replace(tzinfo=UTC)
  return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def timestamp_key_for(data: Mapping[str, Any]) -> str:
  """Pick the first data key not already taken by the caller.

  Caller data always wins: `timestamp` is used when free, then `deliveryTimestamp`,
  then `deliveryTimestamp_1`, `deliveryTimestamp_2` and so on.
  """
  if TIMESTAMP_KEY not in data:
    return TIMESTAMP_KEY
  if FALLBACK_TIMESTAMP_KEY not in data:
    return FALLBACK_TIMESTAMP_KEY
  suffix = 1
  while f"{FALLBACK_TIMESTAMP_KEY}_{suffix}" in data:
    suffix += 1
  return f"{FALLBACK_TIMESTAMP_KEY}_{suffix}"


def build_payload(title: str, body: str, data: Mapping[str, Any] | None = None, *, now: Callable[[], datetime] | None = None) -> NotificationPayload:
  """Build an immutable payload with a delivery timestamp and fixed delivery hints."""
  normalized: dict[str, str] = {}
  for key, value in (data or {}).items():
    if not isinstance(key, str):
      raise TypeError(f"Notification data keys must be strings, got {type(key).__name__}")
    # FCM only accepts string values in the data map.
    normalized[key] = "" if value is None else str(value)

  delivery_timestamp = format_timestamp((now or _utc_now)())
  timestamp_key = timestamp_key_for(normalized)
  normalized[timestamp_key] = delivery_timestamp

  return NotificationPayload(
    title=str(title), body=str(body), data=MappingProxyType(normalized), delivery_timestamp=delivery_timestamp, timestamp_key=timestamp_key, hints=DEFAULT_DELIVERY_HINTS
  )
