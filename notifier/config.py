"""Application configuration loaded from environment variables."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from notifier.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

# FCM rejects multicast requests above this many tokens.
FCM_MAX_MULTICAST_TOKENS = 500


@dataclass(frozen=True)
class Settings:
  """Typed settings for the notifier service."""

  environment: str
  debug: bool
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  pg_dsn: str | None
  pg_connect_timeout: int
  push_notifications_enabled: bool
  push_max_batch_size: int
  push_dry_run: bool
  firebase_project_id: str | None
  firebase_service_account: dict[str, Any] | None
  firebase_service_account_json_path: str | None


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  stripped = raw.strip()
  return stripped or None


def _parse_int(name: str, default: str) -> int:
  raw = os.getenv(name, default).strip()
  try:
    return int(raw)
  except ValueError as exc:
    raise ValueError(f"{name} must be an integer.") from exc


def _parse_service_account(raw: str | None) -> dict[str, Any] | None:
  """Decode an inline service account JSON document."""
  value = _optional_str(raw)
  if value is None:
    return None

  try:
    parsed = json.loads(value)
  except json.JSONDecodeError as exc:
    raise ValueError("FIREBASE_SERVICE_ACCOUNT must be a JSON document.") from exc

  if not isinstance(parsed, dict):
    raise ValueError("FIREBASE_SERVICE_ACCOUNT must be a JSON object.")

  return parsed


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("NOTIFIER_ENV", "development").strip().lower()
  debug = _parse_bool(os.getenv("NOTIFIER_DEBUG"))
  log_dir = (os.getenv("NOTIFIER_LOG_DIR") or "./logs").strip()

  log_max_bytes = _parse_int("NOTIFIER_LOG_MAX_BYTES", "5242880")  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("NOTIFIER_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = _parse_int("NOTIFIER_LOG_BACKUP_COUNT", "10")
  if log_backup_count < 0:
    raise ValueError("NOTIFIER_LOG_BACKUP_COUNT must be zero or a positive integer.")

  database = get_database_settings()

  push_notifications_enabled = _parse_bool(os.getenv("NOTIFIER_PUSH_NOTIFICATIONS_ENABLED"))
  push_dry_run = _parse_bool(os.getenv("NOTIFIER_PUSH_DRY_RUN"))
  push_max_batch_size = _parse_int("NOTIFIER_PUSH_MAX_BATCH_SIZE", str(FCM_MAX_MULTICAST_TOKENS))
  if not 1 <= push_max_batch_size <= FCM_MAX_MULTICAST_TOKENS:
    raise ValueError(f"NOTIFIER_PUSH_MAX_BATCH_SIZE must be between 1 and {FCM_MAX_MULTICAST_TOKENS}.")

  firebase_project_id = _optional_str(os.getenv("FIREBASE_PROJECT_ID"))
  firebase_service_account = _parse_service_account(os.getenv("FIREBASE_SERVICE_ACCOUNT"))
  firebase_service_account_json_path = _optional_str(os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH"))

  # Validate provider credentials only when push delivery is enabled.
  if push_notifications_enabled:
    if not (firebase_project_id or firebase_service_account or firebase_service_account_json_path):
      raise ValueError("FIREBASE_PROJECT_ID, FIREBASE_SERVICE_ACCOUNT or FIREBASE_SERVICE_ACCOUNT_JSON_PATH must be set when push notifications are enabled.")

    if firebase_service_account_json_path and not os.path.isfile(firebase_service_account_json_path):
      raise ValueError(f"FIREBASE_SERVICE_ACCOUNT_JSON_PATH does not exist: {firebase_service_account_json_path}")

  return Settings(
    environment=environment,
    debug=debug,
    log_dir=log_dir,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    pg_dsn=database.pg_dsn,
    pg_connect_timeout=database.pg_connect_timeout,
    push_notifications_enabled=push_notifications_enabled,
    push_max_batch_size=push_max_batch_size,
    push_dry_run=push_dry_run,
    firebase_project_id=firebase_project_id,
    firebase_service_account=firebase_service_account,
    firebase_service_account_json_path=firebase_service_account_json_path,
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring push provider configuration."""
  debug = _parse_bool(os.getenv("NOTIFIER_DEBUG"))
  pg_connect_timeout = _parse_int("NOTIFIER_PG_CONNECT_TIMEOUT", "5")
  if pg_connect_timeout <= 0:
    raise ValueError("NOTIFIER_PG_CONNECT_TIMEOUT must be a positive integer.")

  # Support fallback to DATABASE_URL for platform-provided databases
  pg_dsn = _optional_str(os.getenv("NOTIFIER_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))
  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)
