"""Templates for the known notification event types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

TEST_NOTIFICATION_TITLE = "Test Notification"
TEST_NOTIFICATION_BODY = "This is a test notification from Kindify"

_DESCRIPTION_PREVIEW_CHARS = 50


@dataclass(frozen=True)
class EventTemplate:
  """Define a push notification template for one event type."""

  event_type: str
  title_template: str
  body_template: str
  required_keys: frozenset[str] = frozenset()
  data_keys: frozenset[str] = field(default_factory=frozenset)


TEMPLATES: dict[str, EventTemplate] = {
  "new_donation": EventTemplate(
    event_type="new_donation",
    title_template="New Donation Opportunity! 💝",
    body_template="{{trustName}} has a new donation opportunity",
    required_keys=frozenset({"donationId", "trustName", "trustId"}),
    data_keys=frozenset({"donationId", "trustName", "trustId"}),
  ),
  "distribution_alert": EventTemplate(
    event_type="distribution_alert",
    title_template="Distribution Alert 📦",
    body_template="{{creatorName}}: {{description}}",
    required_keys=frozenset({"alertId", "location", "date", "creatorName", "description"}),
    data_keys=frozenset({"alertId", "location", "date", "creatorName"}),
  ),
  "test": EventTemplate(event_type="test", title_template=TEST_NOTIFICATION_TITLE, body_template=TEST_NOTIFICATION_BODY),
}


def preview(text: str, limit: int = _DESCRIPTION_PREVIEW_CHARS) -> str:
  """Shorten free text for a notification body."""
  return f"{text[:limit]}..." if len(text) > limit else text


def render_event(*, event_type: str, fields: dict[str, Any]) -> tuple[str, str, dict[str, str]]:
  """Render an event into title, body and the data map sent with the push."""
  template = TEMPLATES.get(event_type)
  if template is None:
    raise ValueError(f"Unknown notification event type: {event_type}")
  missing = sorted(template.required_keys - {key for key, value in fields.items() if value is not None})
  if missing:
    raise ValueError(f"Missing fields for event '{event_type}': {', '.join(missing)}")

  placeholders = {key: str(value) for key, value in fields.items() if value is not None}
  if "description" in placeholders:
    placeholders["description"] = preview(placeholders["description"])

  title = template.title_template
  body = template.body_template
  for key, value in placeholders.items():
    title = title.replace(f"{{{{{key}}}}}", value)
    body = body.replace(f"{{{{{key}}}}}", value)

  data = {key: placeholders[key] for key in sorted(template.data_keys)}
  data["type"] = event_type
  return title, body, data
