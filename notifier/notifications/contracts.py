"""Contracts for push notification fan-out."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

ERROR_INVALID_TOKEN = "invalid-registration-token"
ERROR_TOKEN_NOT_REGISTERED = "registration-token-not-registered"
ERROR_PROVIDER_UNAVAILABLE = "provider-unavailable"
ERROR_INTERNAL = "internal-error"

# Codes meaning the token will never be deliverable again.
PERMANENT_ERROR_CODES = frozenset({ERROR_INVALID_TOKEN, ERROR_TOKEN_NOT_REGISTERED})

NO_TOKENS_ERROR = "no tokens"


def is_permanent_error(error_code: str | None) -> bool:
  """Return True when a provider error code warrants pruning the token."""
  return error_code in PERMANENT_ERROR_CODES


class NotificationError(Exception):
  """Base class for notifier failures raised inside the package."""


class InvalidDeviceTokenError(NotificationError, ValueError):
  """Raised when a blank device token is registered."""


@dataclass(frozen=True)
class DeliveryHints:
  """Platform delivery hints applied to every message."""

  android_priority: str = "high"
  sound: str = "default"
  android_channel_id: str = "default"
  apns_badge: int = 1


DEFAULT_DELIVERY_HINTS = DeliveryHints()


@dataclass(frozen=True)
class NotificationPayload:
  """Title/body/data envelope for a single send."""

  title: str
  body: str
  data: Mapping[str, str]
  delivery_timestamp: str
  timestamp_key: str
  hints: DeliveryHints = DEFAULT_DELIVERY_HINTS


@dataclass(frozen=True)
class TokenResult:
  """Normalized provider outcome for one device token."""

  token: str
  success: bool
  error_code: str | None = None
  error_message: str | None = None
  message_id: str | None = None

  @property
  def permanent_failure(self) -> bool:
    return not self.success and is_permanent_error(self.error_code)


@dataclass(frozen=True)
class BatchSendResult:
  """Ordered per-token outcomes of one multicast call."""

  results: tuple[TokenResult, ...]

  @property
  def success_count(self) -> int:
    return sum(1 for result in self.results if result.success)

  @property
  def failure_count(self) -> int:
    return len(self.results) - self.success_count


@dataclass(frozen=True)
class SingleToken:
  token: str


@dataclass(frozen=True)
class TokenSet:
  tokens: tuple[str, ...]


@dataclass(frozen=True)
class UserId:
  user_id: str


@dataclass(frozen=True)
class UserIdSet:
  user_ids: tuple[str, ...]


@dataclass(frozen=True)
class Role:
  role: str


DeliveryTarget = SingleToken | TokenSet | UserId | UserIdSet | Role


@dataclass(frozen=True)
class DeliveryOutcome:
  """Aggregated per-token results for one notify call."""

  results: tuple[TokenResult, ...] = ()
  error: str | None = None
  pruned_tokens: tuple[str, ...] = field(default=())

  @property
  def attempted(self) -> int:
    return len(self.results)

  @property
  def succeeded(self) -> int:
    return sum(1 for result in self.results if result.success)

  @property
  def failed(self) -> int:
    return self.attempted - self.succeeded


def role_value(role: str | Enum) -> str:
  """Normalize enum roles so storage queries receive plain strings."""
  return str(role.value) if isinstance(role, Enum) else str(role)


class DispatchGateway(Protocol):
  """Delivery contract for the external push provider."""

  def is_initialized(self) -> bool:
    """Return True when the provider SDK is ready to send."""

  def send_one(self, token: str, payload: NotificationPayload) -> TokenResult:
    """Send to a single token synchronously."""

  def send_many(self, tokens: Sequence[str], payload: NotificationPayload) -> BatchSendResult:
    """Send to a non-empty batch of tokens in one provider call."""


class TokenRegistry(Protocol):
  """Lookup and maintenance contract for device tokens keyed by user."""

  async def get_token_for_user(self, user_id: str) -> str | None:
    """Return the user's current token, if any."""

  async def get_tokens_for_users(self, user_ids: Iterable[str]) -> set[str]:
    """Return tokens held by the given users, skipping users without one."""

  async def get_tokens_for_role(self, role: str | Enum) -> set[str]:
    """Return tokens held by users with the given role."""

  async def prune_token(self, token: str) -> None:
    """Remove the token wherever it is registered."""

  async def set_token_for_user(self, user_id: str, token: str) -> bool:
    """Register a token for a user, replacing any existing one; False when the user is unknown."""

  async def clear_token_for_user(self, user_id: str) -> bool:
    """Remove the user's token; False when the user is unknown."""
