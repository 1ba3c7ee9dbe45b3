"""Push delivery gateway implementations."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import firebase_admin
from firebase_admin import exceptions, messaging
from google.auth.exceptions import DefaultCredentialsError

from notifier.notifications.contracts import (
  ERROR_INTERNAL,
  ERROR_INVALID_TOKEN,
  ERROR_PROVIDER_UNAVAILABLE,
  ERROR_TOKEN_NOT_REGISTERED,
  BatchSendResult,
  DispatchGateway,
  NotificationPayload,
  TokenResult,
  is_permanent_error,
)

logger = logging.getLogger(__name__)

_PROVIDER_UNAVAILABLE_MESSAGE = "Firebase not initialized"


class FirebaseDispatchGateway(DispatchGateway):
  """`firebase-admin` backed gateway that normalizes provider errors per token."""

  def __init__(self, *, app: firebase_admin.App | None, dry_run: bool = False) -> None:
    self._app = app
    self._dry_run = dry_run

  def is_initialized(self) -> bool:
    return self._app is not None

  def send_one(self, token: str, payload: NotificationPayload) -> TokenResult:
    """Send a single message and return its normalized result."""
    if self._app is None:
      logger.warning("Firebase not initialized. Skipping notification.")
      return TokenResult(token=token, success=False, error_code=ERROR_PROVIDER_UNAVAILABLE, error_message=_PROVIDER_UNAVAILABLE_MESSAGE)

    try:
      message_id = messaging.send(build_message(token, payload), dry_run=self._dry_run, app=self._app)
    except Exception as exc:  # noqa: BLE001
      error_code = classify_exception(exc)
      logger.error("Error sending notification error_code=%s error=%s", error_code, exc)
      return TokenResult(token=token, success=False, error_code=error_code, error_message=str(exc))

    return TokenResult(token=token, success=True, message_id=message_id)

  def send_many(self, tokens: Sequence[str], payload: NotificationPayload) -> BatchSendResult:
    """Send one multicast request; results follow the order of `tokens`."""
    token_list = list(tokens)
    if not token_list:
      raise ValueError("send_many requires at least one token.")

    if self._app is None:
      logger.warning("Firebase not initialized. Skipping notification.")
      return _failed_batch(token_list, error_code=ERROR_PROVIDER_UNAVAILABLE, error_message=_PROVIDER_UNAVAILABLE_MESSAGE)

    try:
      response = messaging.send_each_for_multicast(build_multicast_message(token_list, payload), dry_run=self._dry_run, app=self._app)
    except Exception as exc:  # noqa: BLE001
      error_code = classify_exception(exc)
      # Whole-call failures are not attributable to a token; never report them as permanent.
      if is_permanent_error(error_code):
        error_code = ERROR_INTERNAL
      logger.error("Error sending batch notifications error_code=%s tokens=%d error=%s", error_code, len(token_list), exc)
      return _failed_batch(token_list, error_code=error_code, error_message=str(exc))

    results: list[TokenResult] = []
    for token, send_response in zip(token_list, response.responses, strict=True):
      if send_response.success:
        results.append(TokenResult(token=token, success=True, message_id=send_response.message_id))
        continue
      exc = send_response.exception
      results.append(TokenResult(token=token, success=False, error_code=classify_exception(exc) if exc is not None else ERROR_INTERNAL, error_message=str(exc) if exc is not None else None))

    return BatchSendResult(results=tuple(results))


class NullDispatchGateway(DispatchGateway):
  """Gateway used when push notifications are disabled or unconfigured."""

  def is_initialized(self) -> bool:
    return False

  def send_one(self, token: str, payload: NotificationPayload) -> TokenResult:
    logger.debug("Push notifications disabled; dropping notification title=%r", payload.title)
    return TokenResult(token=token, success=False, error_code=ERROR_PROVIDER_UNAVAILABLE, error_message="Push notifications are disabled")

  def send_many(self, tokens: Sequence[str], payload: NotificationPayload) -> BatchSendResult:
    logger.debug("Push notifications disabled; dropping notification title=%r tokens=%d", payload.title, len(tokens))
    return _failed_batch(list(tokens), error_code=ERROR_PROVIDER_UNAVAILABLE, error_message="Push notifications are disabled")


def classify_exception(exc: BaseException) -> str:
  """Map a provider exception onto a normalized error code."""
  if isinstance(exc, messaging.UnregisteredError):
    return ERROR_TOKEN_NOT_REGISTERED

  if isinstance(exc, exceptions.InvalidArgumentError) and "registration token" in str(exc).lower():
    return ERROR_INVALID_TOKEN

  if isinstance(exc, messaging.SenderIdMismatchError):
    return "mismatched-credential"

  if isinstance(exc, messaging.QuotaExceededError):
    return "message-rate-exceeded"

  if isinstance(exc, messaging.ThirdPartyAuthError):
    return "third-party-auth-error"

  if isinstance(exc, exceptions.FirebaseError):
    return str(exc.code).lower().replace("_", "-")

  if isinstance(exc, DefaultCredentialsError):
    return ERROR_PROVIDER_UNAVAILABLE

  # The SDK validates message fields eagerly and raises ValueError on bad input.
  if isinstance(exc, ValueError):
    return "invalid-argument"

  return ERROR_INTERNAL


def build_message(token: str, payload: NotificationPayload) -> messaging.Message:
  return messaging.Message(
    notification=messaging.Notification(title=payload.title, body=payload.body), data=dict(payload.data), token=token, android=_android_config(payload), apns=_apns_config(payload)
  )


def build_multicast_message(tokens: list[str], payload: NotificationPayload) -> messaging.MulticastMessage:
  return messaging.MulticastMessage(
    tokens=tokens, notification=messaging.Notification(title=payload.title, body=payload.body), data=dict(payload.data), android=_android_config(payload), apns=_apns_config(payload)
  )


def _android_config(payload: NotificationPayload) -> messaging.AndroidConfig:
  hints = payload.hints
  return messaging.AndroidConfig(priority=hints.android_priority, notification=messaging.AndroidNotification(sound=hints.sound, channel_id=hints.android_channel_id))


def _apns_config(payload: NotificationPayload) -> messaging.APNSConfig:
  hints = payload.hints
  return messaging.APNSConfig(payload=messaging.APNSPayload(aps=messaging.Aps(sound=hints.sound, badge=hints.apns_badge)))


def _failed_batch(tokens: list[str], *, error_code: str, error_message: str | None) -> BatchSendResult:
  return BatchSendResult(results=tuple(TokenResult(token=token, success=False, error_code=error_code, error_message=error_message) for token in tokens))
