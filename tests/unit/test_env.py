from __future__ import annotations

import os

from notifier.utils.env import load_env_file


def test_load_env_file_parses_exports_and_quotes(tmp_path, monkeypatch):
  env_file = tmp_path / ".env"
  env_file.write_text('# comment\nexport NOTIFIER_ENV_A="quoted value"\nNOTIFIER_ENV_B=plain\nnot-a-pair\n=missing-key\n', encoding="utf-8")
  for key in ("NOTIFIER_ENV_A", "NOTIFIER_ENV_B"):
    # Register the key so monkeypatch removes whatever the loader writes.
    monkeypatch.setenv(key, "")
    monkeypatch.delenv(key)

  loaded = load_env_file(env_file)

  assert loaded == 2
  assert os.environ["NOTIFIER_ENV_A"] == "quoted value"
  assert os.environ["NOTIFIER_ENV_B"] == "plain"


def test_load_env_file_keeps_process_values_unless_overridden(tmp_path, monkeypatch):
  env_file = tmp_path / ".env"
  env_file.write_text("NOTIFIER_ENV_C=from-file\n", encoding="utf-8")
  monkeypatch.setenv("NOTIFIER_ENV_C", "from-process")

  assert load_env_file(env_file) == 0
  assert os.environ["NOTIFIER_ENV_C"] == "from-process"

  assert load_env_file(env_file, override=True) == 1
  assert os.environ["NOTIFIER_ENV_C"] == "from-file"


def test_load_env_file_missing_file_is_a_noop(tmp_path):
  assert load_env_file(tmp_path / "absent.env") == 0
