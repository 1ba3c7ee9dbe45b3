from __future__ import annotations

from dataclasses import replace
from types import SimpleNamespace

from notifier.config import Settings
from notifier.core.firebase import initialize_firebase

_BASE = Settings(
  environment="test",
  debug=False,
  log_dir="./logs",
  log_max_bytes=1024,
  log_backup_count=1,
  pg_dsn=None,
  pg_connect_timeout=5,
  push_notifications_enabled=True,
  push_max_batch_size=500,
  push_dry_run=False,
  firebase_project_id="demo-project",
  firebase_service_account=None,
  firebase_service_account_json_path=None,
)


def _patch_sdk(monkeypatch, calls):
  monkeypatch.setattr("notifier.core.firebase.firebase_admin._apps", {})
  monkeypatch.setattr("notifier.core.firebase.credentials.Certificate", lambda source: ("cert", source))
  monkeypatch.setattr("notifier.core.firebase.credentials.ApplicationDefault", lambda: ("adc", None))

  def _initialize_app(cred, options):
    calls.append((cred, options))
    return SimpleNamespace(name="[DEFAULT]")

  monkeypatch.setattr("notifier.core.firebase.firebase_admin.initialize_app", _initialize_app)


def test_inline_service_account_takes_precedence(monkeypatch):
  calls = []
  _patch_sdk(monkeypatch, calls)
  account = {"type": "service_account", "project_id": "demo-project"}

  app = initialize_firebase(replace(_BASE, firebase_service_account=account, firebase_service_account_json_path="/etc/sa.json"))

  assert app.name == "[DEFAULT]"
  assert calls == [(("cert", account), {"projectId": "demo-project"})]


def test_service_account_file_is_used_without_inline_json(monkeypatch):
  calls = []
  _patch_sdk(monkeypatch, calls)

  initialize_firebase(replace(_BASE, firebase_service_account_json_path="/etc/sa.json", firebase_project_id=None))

  assert calls == [(("cert", "/etc/sa.json"), None)]


def test_application_default_credentials_are_the_fallback(monkeypatch):
  calls = []
  _patch_sdk(monkeypatch, calls)

  initialize_firebase(_BASE)

  assert calls == [(("adc", None), {"projectId": "demo-project"})]


def test_existing_app_is_reused(monkeypatch):
  existing = SimpleNamespace(name="[DEFAULT]")
  monkeypatch.setattr("notifier.core.firebase.firebase_admin._apps", {"[DEFAULT]": existing})
  monkeypatch.setattr("notifier.core.firebase.firebase_admin.get_app", lambda: existing)

  assert initialize_firebase(_BASE) is existing


def test_initialization_failure_returns_none(monkeypatch):
  monkeypatch.setattr("notifier.core.firebase.firebase_admin._apps", {})

  def _raise():
    raise ValueError("no default credentials")

  monkeypatch.setattr("notifier.core.firebase.credentials.ApplicationDefault", _raise)

  assert initialize_firebase(_BASE) is None
