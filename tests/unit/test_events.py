from __future__ import annotations

import pytest

from notifier.notifications.events import preview, render_event


def test_distribution_alert_truncates_description():
  description = "x" * 60

  title, body, data = render_event(
    event_type="distribution_alert",
    fields={"alertId": "a1", "location": "Main St", "date": "2024-06-01", "creatorName": "Sam", "description": description},
  )

  assert title == "Distribution Alert 📦"
  assert body == f"Sam: {'x' * 50}..."
  assert data == {"alertId": "a1", "creatorName": "Sam", "date": "2024-06-01", "location": "Main St", "type": "distribution_alert"}


def test_new_donation_keeps_only_declared_data_keys():
  _, body, data = render_event(event_type="new_donation", fields={"donationId": 5, "trustName": "Hope", "trustId": "t9", "internal": "secret"})

  assert body == "Hope has a new donation opportunity"
  assert data == {"donationId": "5", "trustId": "t9", "trustName": "Hope", "type": "new_donation"}


def test_render_event_rejects_unknown_type():
  with pytest.raises(ValueError, match="Unknown notification event type"):
    render_event(event_type="mystery", fields={})


def test_render_event_reports_missing_fields():
  with pytest.raises(ValueError, match="trustId, trustName"):
    render_event(event_type="new_donation", fields={"donationId": "d1", "trustName": None})


def test_preview_leaves_short_text_alone():
  assert preview("short") == "short"
  assert preview("y" * 50) == "y" * 50
