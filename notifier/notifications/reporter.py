"""Caller-facing summaries of delivery outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from notifier.notifications.contracts import DeliveryOutcome, TokenResult


@dataclass(frozen=True)
class NotificationSummary:
  """Result returned by every notify entry point.

  `success` is true when at least one recipient was reached, so a partially failed
  batch still reports success; `failure_count` tells the caller how many did not.
  """

  success: bool
  success_count: int
  failure_count: int
  error: str | None = None
  message_id: str | None = None
  responses: tuple[TokenResult, ...] = ()

  def to_dict(self) -> dict[str, Any]:
    payload: dict[str, Any] = {"success": self.success, "successCount": self.success_count, "failureCount": self.failure_count}
    if self.error is not None:
      payload["error"] = self.error
    if self.message_id is not None:
      payload["messageId"] = self.message_id
    payload["responses"] = [{"token": r.token, "success": r.success, "errorCode": r.error_code, "messageId": r.message_id} for r in self.responses]
    return payload


def summarize(outcome: DeliveryOutcome) -> NotificationSummary:
  """Shape a delivery outcome into the caller-facing summary."""
  success = outcome.succeeded > 0
  error = outcome.error
  if error is None and not success:
    error = _first_failure_message(outcome.results)

  message_id = None
  if outcome.attempted == 1 and outcome.results[0].success:
    message_id = outcome.results[0].message_id

  return NotificationSummary(success=success, success_count=outcome.succeeded, failure_count=outcome.failed, error=error, message_id=message_id, responses=outcome.results)


def failure_summary(error: str) -> NotificationSummary:
  return summarize(DeliveryOutcome(error=error))


def _first_failure_message(results: tuple[TokenResult, ...]) -> str | None:
  for result in results:
    if not result.success:
      return result.error_message or result.error_code
  return None
