"""Operator CLI for device token maintenance and manual push sends.

Examples:
  python scripts/push_cli.py register --user-id 42 --token <fcm-token>
  python scripts/push_cli.py test --user-id 42
  python scripts/push_cli.py send --role User --title "Hello" --body "World" --data type=announcement
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Ensure repo root is on sys.path so local imports work when invoked directly.
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))


def parse_data_pairs(pairs: list[str] | None) -> dict[str, str]:
  """Parse repeated `key=value` arguments into a data map."""
  data: dict[str, str] = {}
  for pair in pairs or []:
    if "=" not in pair:
      raise argparse.ArgumentTypeError(f"invalid --data entry (expected key=value): {pair}")
    key, value = pair.split("=", 1)
    key = key.strip()
    if not key:
      raise argparse.ArgumentTypeError(f"invalid --data entry (empty key): {pair}")
    data[key] = value
  return data


def build_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(description="Manage device tokens and send push notifications.")
  subparsers = parser.add_subparsers(dest="command", required=True)

  register = subparsers.add_parser("register", help="Register a device token for a user.")
  register.add_argument("--user-id", required=True)
  register.add_argument("--token", required=True)

  unregister = subparsers.add_parser("unregister", help="Remove a user's device token.")
  unregister.add_argument("--user-id", required=True)

  test = subparsers.add_parser("test", help="Send a test notification to a user.")
  test.add_argument("--user-id", required=True)
  test.add_argument("--title")
  test.add_argument("--body")
  test.add_argument("--data", action="append", metavar="KEY=VALUE")

  send = subparsers.add_parser("send", help="Send a notification to users, a role or raw tokens.")
  target = send.add_mutually_exclusive_group(required=True)
  target.add_argument("--user-id", dest="user_ids", action="append", metavar="USER_ID")
  target.add_argument("--role")
  target.add_argument("--token", dest="tokens", action="append", metavar="TOKEN")
  send.add_argument("--title", required=True)
  send.add_argument("--body", required=True)
  send.add_argument("--data", action="append", metavar="KEY=VALUE")

  return parser


async def run(args: argparse.Namespace) -> int:
  """Execute a parsed command and return the process exit code."""
  # Import after path setup so the script works when run directly.
  from notifier.config import get_settings
  from notifier.core.logging import initialize_logging
  from notifier.notifications.factory import build_fanout_coordinator, build_token_registry

  settings = get_settings()
  initialize_logging(settings)

  if args.command in {"register", "unregister"}:
    # An in-memory registry would accept the write and lose it on exit.
    if not settings.pg_dsn:
      raise ValueError("NOTIFIER_PG_DSN must be set to register or unregister device tokens.")

    registry = build_token_registry(settings)
    if args.command == "register":
      updated = await registry.set_token_for_user(args.user_id, args.token)
      message = "Device token saved"
    else:
      updated = await registry.clear_token_for_user(args.user_id)
      message = "Device token removed"

    if not updated:
      print(json.dumps({"success": False, "error": f"User not found: {args.user_id}"}))
      return 1
    print(json.dumps({"success": True, "message": message}))
    return 0

  coordinator = build_fanout_coordinator(settings)
  data = parse_data_pairs(args.data)

  if args.command == "test":
    summary = await coordinator.send_test_notification(args.user_id, args.title, args.body, data)
  elif args.tokens:
    summary = await coordinator.notify_devices(args.tokens, args.title, args.body, data)
  else:
    summary = await coordinator.broadcast(args.title, args.body, data, user_ids=args.user_ids, role=args.role)

  print(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False))
  return 0 if summary.success else 1


def main(argv: list[str] | None = None) -> int:
  parser = build_parser()
  args = parser.parse_args(argv)
  try:
    return asyncio.run(run(args))
  except argparse.ArgumentTypeError as exc:
    parser.error(str(exc))
  except ValueError as exc:
    # Configuration and token validation errors are operator mistakes, not crashes.
    print(f"Error: {exc}", file=sys.stderr)
    return 2


if __name__ == "__main__":
  sys.exit(main())
