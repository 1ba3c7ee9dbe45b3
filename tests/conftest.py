"""Shared fixtures for notifier tests."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from notifier.notifications.contracts import BatchSendResult, NotificationPayload, TokenResult


@pytest.fixture
def anyio_backend():
  return "asyncio"


class FakeGateway:
  """In-process gateway that fails the tokens listed in `failures` with the given codes."""

  def __init__(self, failures: dict[str, str] | None = None) -> None:
    self.failures = failures or {}
    self.single_calls: list[str] = []
    self.batch_calls: list[list[str]] = []
    self.payloads: list[NotificationPayload] = []

  def is_initialized(self) -> bool:
    return True

  def _result(self, token: str) -> TokenResult:
    error_code = self.failures.get(token)
    if error_code:
      return TokenResult(token=token, success=False, error_code=error_code, error_message=f"{error_code}: {token}")
    return TokenResult(token=token, success=True, message_id=f"projects/test/messages/{token}")

  def send_one(self, token: str, payload: NotificationPayload) -> TokenResult:
    self.single_calls.append(token)
    self.payloads.append(payload)
    return self._result(token)

  def send_many(self, tokens: Sequence[str], payload: NotificationPayload) -> BatchSendResult:
    self.batch_calls.append(list(tokens))
    self.payloads.append(payload)
    return BatchSendResult(results=tuple(self._result(token) for token in tokens))

  @property
  def call_count(self) -> int:
    return len(self.single_calls) + len(self.batch_calls)

  @property
  def sent_tokens(self) -> list[str]:
    return self.single_calls + [token for batch in self.batch_calls for token in batch]


@pytest.fixture
def fake_gateway() -> FakeGateway:
  return FakeGateway()


@pytest.fixture
def gateway_factory():
  return FakeGateway
