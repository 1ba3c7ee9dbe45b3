"""Factory helpers for the fan-out coordinator."""

from __future__ import annotations

import logging

from notifier.config import Settings
from notifier.core.database import get_session_factory
from notifier.core.firebase import initialize_firebase
from notifier.notifications.contracts import DispatchGateway, TokenRegistry
from notifier.notifications.fanout import FanoutCoordinator
from notifier.notifications.gateway import FirebaseDispatchGateway, NullDispatchGateway
from notifier.notifications.token_registry import InMemoryTokenRegistry, SqlTokenRegistry

logger = logging.getLogger(__name__)


def build_gateway(settings: Settings) -> DispatchGateway:
  """Construct the push gateway from configuration."""
  # Push is disabled by default to avoid accidental delivery in dev/test.
  if not settings.push_notifications_enabled:
    return NullDispatchGateway()

  # A failed initialization still yields a Firebase gateway so sends report provider-unavailable.
  return FirebaseDispatchGateway(app=initialize_firebase(settings), dry_run=settings.push_dry_run)


def build_token_registry(settings: Settings) -> TokenRegistry:
  """Use the SQL user directory when Postgres is configured."""
  if settings.pg_dsn:
    return SqlTokenRegistry(session_factory=get_session_factory())

  logger.warning("No user directory configured (NOTIFIER_PG_DSN is missing); using an in-memory token registry.")
  return InMemoryTokenRegistry()


def build_fanout_coordinator(settings: Settings, *, gateway: DispatchGateway | None = None, registry: TokenRegistry | None = None) -> FanoutCoordinator:
  """Construct a coordinator based on environment configuration."""
  return FanoutCoordinator(gateway=gateway or build_gateway(settings), registry=registry or build_token_registry(settings), max_batch_size=settings.push_max_batch_size)
