from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace

import pytest
from firebase_admin import exceptions, messaging

from notifier.notifications.contracts import ERROR_INTERNAL, ERROR_INVALID_TOKEN, ERROR_PROVIDER_UNAVAILABLE, ERROR_TOKEN_NOT_REGISTERED
from notifier.notifications.gateway import FirebaseDispatchGateway, NullDispatchGateway, classify_exception
from notifier.notifications.payload import build_payload

_APP = SimpleNamespace(name="[DEFAULT]")


def _payload():
  return build_payload("Hi", "Body", {"type": "ping"}, now=lambda: datetime(2024, 5, 1, tzinfo=UTC))


def test_send_one_returns_message_id_and_builds_platform_hints(monkeypatch):
  call = {}

  def _capture(message, dry_run=False, app=None):
    call.update(message=message, dry_run=dry_run, app=app)
    return "projects/p/messages/1"

  monkeypatch.setattr("notifier.notifications.gateway.messaging.send", _capture)

  result = FirebaseDispatchGateway(app=_APP).send_one("tok-1", _payload())

  assert result.success is True
  assert result.message_id == "projects/p/messages/1"
  message = call["message"]
  assert message.token == "tok-1"
  assert message.notification.title == "Hi"
  assert message.data == {"type": "ping", "timestamp": "2024-05-01T00:00:00.000Z"}
  assert message.android.priority == "high"
  assert message.android.notification.sound == "default"
  assert message.android.notification.channel_id == "default"
  assert message.apns.payload.aps.sound == "default"
  assert message.apns.payload.aps.badge == 1
  assert call["app"] is _APP
  assert call["dry_run"] is False


def test_send_one_normalizes_unregistered_token(monkeypatch):
  def _raise(message, dry_run=False, app=None):
    raise messaging.UnregisteredError("Requested entity was not found.")

  monkeypatch.setattr("notifier.notifications.gateway.messaging.send", _raise)

  result = FirebaseDispatchGateway(app=_APP).send_one("tok-dead", _payload())

  assert result.success is False
  assert result.error_code == ERROR_TOKEN_NOT_REGISTERED
  assert result.permanent_failure is True


def test_send_one_without_app_reports_provider_unavailable(monkeypatch):
  def _fail(*args, **kwargs):
    raise AssertionError("provider must not be called")

  monkeypatch.setattr("notifier.notifications.gateway.messaging.send", _fail)
  gateway = FirebaseDispatchGateway(app=None)

  result = gateway.send_one("tok-1", _payload())

  assert gateway.is_initialized() is False
  assert result.success is False
  assert result.error_code == ERROR_PROVIDER_UNAVAILABLE
  assert result.permanent_failure is False


def test_send_many_maps_per_token_responses_in_order(monkeypatch):
  call = {}

  def _multicast(message, dry_run=False, app=None):
    call["message"] = message
    return SimpleNamespace(
      responses=[
        SimpleNamespace(success=True, message_id="m1", exception=None),
        SimpleNamespace(success=False, message_id=None, exception=exceptions.InvalidArgumentError("The registration token is not a valid FCM registration token")),
        SimpleNamespace(success=False, message_id=None, exception=exceptions.UnavailableError("FCM unavailable")),
      ]
    )

  monkeypatch.setattr("notifier.notifications.gateway.messaging.send_each_for_multicast", _multicast)

  batch = FirebaseDispatchGateway(app=_APP, dry_run=True).send_many(["tok-1", "tok-2", "tok-3"], _payload())

  assert call["message"].tokens == ["tok-1", "tok-2", "tok-3"]
  assert [r.token for r in batch.results] == ["tok-1", "tok-2", "tok-3"]
  assert [r.error_code for r in batch.results] == [None, ERROR_INVALID_TOKEN, "unavailable"]
  assert (batch.success_count, batch.failure_count) == (1, 2)
  assert [r.permanent_failure for r in batch.results] == [False, True, False]


def test_send_many_whole_call_failure_fails_every_token(monkeypatch):
  def _raise(message, dry_run=False, app=None):
    raise exceptions.UnauthenticatedError("bad credentials")

  monkeypatch.setattr("notifier.notifications.gateway.messaging.send_each_for_multicast", _raise)

  batch = FirebaseDispatchGateway(app=_APP).send_many(["tok-1", "tok-2"], _payload())

  assert batch.failure_count == 2
  assert {r.error_code for r in batch.results} == {"unauthenticated"}


def test_send_many_whole_call_token_error_is_not_permanent(monkeypatch):
  def _raise(message, dry_run=False, app=None):
    raise messaging.UnregisteredError("Requested entity was not found.")

  monkeypatch.setattr("notifier.notifications.gateway.messaging.send_each_for_multicast", _raise)

  batch = FirebaseDispatchGateway(app=_APP).send_many(["tok-1", "tok-2"], _payload())

  assert {r.error_code for r in batch.results} == {ERROR_INTERNAL}
  assert not any(r.permanent_failure for r in batch.results)


def test_send_many_rejects_empty_batch():
  with pytest.raises(ValueError):
    FirebaseDispatchGateway(app=_APP).send_many([], _payload())


def test_null_gateway_fails_every_token():
  batch = NullDispatchGateway().send_many(["tok-1", "tok-2"], _payload())

  assert NullDispatchGateway().is_initialized() is False
  assert {r.error_code for r in batch.results} == {ERROR_PROVIDER_UNAVAILABLE}


@pytest.mark.parametrize(
  ("exc", "expected"),
  [
    (messaging.UnregisteredError("gone"), ERROR_TOKEN_NOT_REGISTERED),
    (exceptions.InvalidArgumentError("The registration token is not a valid FCM registration token"), ERROR_INVALID_TOKEN),
    (exceptions.InvalidArgumentError("Message data is too large"), "invalid-argument"),
    (messaging.SenderIdMismatchError("wrong sender"), "mismatched-credential"),
    (messaging.QuotaExceededError("slow down"), "message-rate-exceeded"),
    (messaging.ThirdPartyAuthError("apns cert"), "third-party-auth-error"),
    (exceptions.InternalError("boom"), "internal"),
    (ValueError("bad field"), "invalid-argument"),
    (RuntimeError("???"), ERROR_INTERNAL),
  ],
)
def test_classify_exception(exc, expected):
  assert classify_exception(exc) == expected
