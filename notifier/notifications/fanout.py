"""Fan-out of one logical notification to every resolved device token."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from starlette.concurrency import run_in_threadpool

from notifier.config import FCM_MAX_MULTICAST_TOKENS
from notifier.notifications.contracts import (
  ERROR_INTERNAL,
  NO_TOKENS_ERROR,
  DeliveryOutcome,
  DeliveryTarget,
  DispatchGateway,
  NotificationPayload,
  Role,
  SingleToken,
  TokenRegistry,
  TokenResult,
  TokenSet,
  UserId,
  UserIdSet,
  role_value,
)
from notifier.notifications.events import TEST_NOTIFICATION_BODY, TEST_NOTIFICATION_TITLE, render_event
from notifier.notifications.payload import build_payload
from notifier.notifications.reporter import NotificationSummary, failure_summary, summarize

logger = logging.getLogger(__name__)


def clean_tokens(tokens: Iterable[str | None]) -> list[str]:
  """Strip, drop blanks and deduplicate while keeping first-seen order."""
  seen: set[str] = set()
  cleaned: list[str] = []
  for token in tokens:
    if not isinstance(token, str):
      continue
    normalized = token.strip()
    if normalized and normalized not in seen:
      seen.add(normalized)
      cleaned.append(normalized)
  return cleaned


def _chunks(tokens: list[str], size: int) -> Iterable[list[str]]:
  for start in range(0, len(tokens), size):
    yield tokens[start : start + size]


class FanoutCoordinator:
  """Resolve targets to device tokens, dispatch, account per token and prune dead tokens.

  Every public entry point returns a `NotificationSummary`; delivery problems are reported
  in the result and never raised, so callers can notify without guarding their own work.
  """

  def __init__(self, *, gateway: DispatchGateway, registry: TokenRegistry, max_batch_size: int = FCM_MAX_MULTICAST_TOKENS, clock: Callable[[], datetime] | None = None) -> None:
    if not 1 <= max_batch_size <= FCM_MAX_MULTICAST_TOKENS:
      raise ValueError(f"max_batch_size must be between 1 and {FCM_MAX_MULTICAST_TOKENS}")
    self._gateway = gateway
    self._registry = registry
    self._max_batch_size = max_batch_size
    self._clock = clock

  async def notify_device(self, token: str, title: str, body: str, data: Mapping[str, Any] | None = None) -> NotificationSummary:
    return await self.notify(SingleToken(token=token), title, body, data)

  async def notify_devices(self, tokens: Iterable[str], title: str, body: str, data: Mapping[str, Any] | None = None) -> NotificationSummary:
    return await self.notify(TokenSet(tokens=tuple(tokens or ())), title, body, data)

  async def notify_user(self, user_id: str, title: str, body: str, data: Mapping[str, Any] | None = None) -> NotificationSummary:
    return await self.notify(UserId(user_id=user_id), title, body, data)

  async def notify_users(self, user_ids: Iterable[str], title: str, body: str, data: Mapping[str, Any] | None = None) -> NotificationSummary:
    return await self.notify(UserIdSet(user_ids=tuple(user_ids or ())), title, body, data)

  async def notify_role(self, role: str | Enum, title: str, body: str, data: Mapping[str, Any] | None = None) -> NotificationSummary:
    return await self.notify(Role(role=role_value(role)), title, body, data)

  async def notify(self, target: DeliveryTarget, title: str, body: str, data: Mapping[str, Any] | None = None) -> NotificationSummary:
    """Deliver to any target shape and summarize the outcome."""
    return summarize(await self.deliver(target, title, body, data))

  async def notify_event(self, target: DeliveryTarget, event_type: str, fields: dict[str, Any]) -> NotificationSummary:
    """Render a known event template and deliver it."""
    try:
      title, body, data = render_event(event_type=event_type, fields=fields)
    except ValueError as exc:
      logger.error("Push event render failed event_type=%s error=%s", event_type, exc)
      return failure_summary(str(exc))
    return await self.notify(target, title, body, data)

  async def send_test_notification(self, user_id: str, title: str | None = None, body: str | None = None, data: Mapping[str, Any] | None = None) -> NotificationSummary:
    """Send a test push to one user, using default copy when none is given."""
    return await self.notify_user(user_id, title or TEST_NOTIFICATION_TITLE, body or TEST_NOTIFICATION_BODY, data or {})

  async def broadcast(self, title: str, body: str, data: Mapping[str, Any] | None = None, *, user_ids: Iterable[str] | None = None, role: str | Enum | None = None) -> NotificationSummary:
    """Notify explicit users when given, otherwise every user holding `role`."""
    if not title or not body:
      return failure_summary("title and body are required")
    ids = list(user_ids or [])
    if ids:
      return await self.notify_users(ids, title, body, data)
    if role:
      return await self.notify_role(role, title, body, data)
    return failure_summary("user_ids or role is required")

  async def deliver(self, target: DeliveryTarget, title: str, body: str, data: Mapping[str, Any] | None = None) -> DeliveryOutcome:
    """Run the resolve, dispatch, prune pipeline and return the raw per-token outcome."""
    try:
      tokens = await self._resolve(target)
    except Exception as exc:  # noqa: BLE001
      logger.error("Push target resolution failed target=%s error=%s", type(target).__name__, exc, exc_info=True)
      return DeliveryOutcome(error=str(exc))

    if not tokens:
      logger.info("No device tokens resolved for target=%s; skipping push", type(target).__name__)
      return DeliveryOutcome(error=NO_TOKENS_ERROR)

    try:
      payload = build_payload(title, body, data, now=self._clock)
    except TypeError as exc:
      logger.error("Push payload build failed error=%s", exc)
      return DeliveryOutcome(error=str(exc))

    results = await self._dispatch(tokens, payload)
    pruned = await self._prune([result.token for result in results if result.permanent_failure])

    outcome = DeliveryOutcome(results=tuple(results), pruned_tokens=tuple(pruned))
    logger.info("Push delivered target=%s attempted=%d succeeded=%d failed=%d pruned=%d", type(target).__name__, outcome.attempted, outcome.succeeded, outcome.failed, len(pruned))
    return outcome

  async def _resolve(self, target: DeliveryTarget) -> list[str]:
    if isinstance(target, SingleToken):
      return clean_tokens([target.token])

    if isinstance(target, TokenSet):
      return clean_tokens(target.tokens)

    if isinstance(target, UserId):
      if not target.user_id:
        return []
      return clean_tokens([await self._registry.get_token_for_user(target.user_id)])

    if isinstance(target, UserIdSet):
      user_ids = [user_id for user_id in target.user_ids if user_id]
      if not user_ids:
        return []
      return clean_tokens(sorted(await self._registry.get_tokens_for_users(user_ids)))

    if isinstance(target, Role):
      return clean_tokens(sorted(await self._registry.get_tokens_for_role(target.role)))

    raise TypeError(f"Unsupported delivery target: {type(target).__name__}")

  async def _dispatch(self, tokens: list[str], payload: NotificationPayload) -> list[TokenResult]:
    if len(tokens) == 1:
      try:
        return [await run_in_threadpool(self._gateway.send_one, tokens[0], payload)]
      except Exception as exc:  # noqa: BLE001
        logger.error("Push gateway send failed: %s", exc, exc_info=True)
        return [TokenResult(token=tokens[0], success=False, error_code=ERROR_INTERNAL, error_message=str(exc))]

    results: list[TokenResult] = []
    for chunk in _chunks(tokens, self._max_batch_size):
      try:
        batch = await run_in_threadpool(self._gateway.send_many, chunk, payload)
        results.extend(batch.results)
      except Exception as exc:  # noqa: BLE001
        logger.error("Push gateway multicast failed tokens=%d error=%s", len(chunk), exc, exc_info=True)
        results.extend(TokenResult(token=token, success=False, error_code=ERROR_INTERNAL, error_message=str(exc)) for token in chunk)
    return results

  async def _prune(self, tokens: list[str]) -> list[str]:
    """Remove permanently invalid tokens; failures are logged and do not affect the result."""
    pruned: list[str] = []
    for token in tokens:
      try:
        await self._registry.prune_token(token)
      except Exception as exc:  # noqa: BLE001
        logger.error("Failed pruning invalid device token error=%s", exc, exc_info=True)
        continue
      pruned.append(token)
    return pruned
