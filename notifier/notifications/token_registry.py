"""Device token lookup and maintenance keyed by user."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notifier.core.database import get_session_factory
from notifier.notifications.contracts import InvalidDeviceTokenError, TokenRegistry, role_value
from notifier.schema.users import User, UserRole

logger = logging.getLogger(__name__)


def normalize_token(token: str | None) -> str:
  """Strip a token for registration, rejecting blank values."""
  normalized = (token or "").strip()
  if not normalized:
    raise InvalidDeviceTokenError("Device token is required")
  return normalized


class SqlTokenRegistry(TokenRegistry):
  """Read and update device tokens stored on the `users` table."""

  def __init__(self, *, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory

  def _sessions(self) -> async_sessionmaker[AsyncSession]:
    session_factory = self._session_factory or get_session_factory()
    if session_factory is None:
      raise RuntimeError("Database connection is not configured (NOTIFIER_PG_DSN is missing).")
    return session_factory

  async def get_token_for_user(self, user_id: str) -> str | None:
    async with self._sessions()() as session:
      result = await session.execute(select(User.device_token).where(User.id == user_id))
      token = result.scalar_one_or_none()
    return token if token and token.strip() else None

  async def get_tokens_for_users(self, user_ids: Iterable[str]) -> set[str]:
    ids = {user_id for user_id in user_ids if user_id}
    if not ids:
      return set()

    async with self._sessions()() as session:
      result = await session.execute(select(User.device_token).where(User.id.in_(ids), User.device_token.is_not(None)))
      tokens = result.scalars().all()
    return {token for token in tokens if token and token.strip()}

  async def get_tokens_for_role(self, role: str | Enum) -> set[str]:
    async with self._sessions()() as session:
      result = await session.execute(select(User.device_token).where(User.role == role_value(role), User.device_token.is_not(None), User.device_token != ""))
      tokens = result.scalars().all()
    return {token for token in tokens if token and token.strip()}

  async def prune_token(self, token: str) -> None:
    # Target by token value so a concurrent re-registration under another token is untouched.
    async with self._sessions()() as session:
      result = await session.execute(update(User).where(User.device_token == token).values(device_token=None))
      await session.commit()
    if result.rowcount:
      logger.warning("Pruned invalid device token from %d user(s)", result.rowcount)

  async def set_token_for_user(self, user_id: str, token: str) -> bool:
    normalized = normalize_token(token)
    async with self._sessions()() as session:
      result = await session.execute(update(User).where(User.id == user_id).values(device_token=normalized))
      if not result.rowcount:
        await session.rollback()
        logger.warning("Device token registration ignored; user not found user_id=%s", user_id)
        return False
      # A device belongs to one user at a time; the latest registration wins.
      await session.execute(update(User).where(User.device_token == normalized, User.id != user_id).values(device_token=None))
      await session.commit()
    return True

  async def clear_token_for_user(self, user_id: str) -> bool:
    async with self._sessions()() as session:
      result = await session.execute(update(User).where(User.id == user_id).values(device_token=None))
      await session.commit()
    return bool(result.rowcount)


@dataclass
class _DirectoryEntry:
  role: str
  device_token: str | None = None


class InMemoryTokenRegistry(TokenRegistry):
  """Process-local registry used for local runs and tests."""

  def __init__(self) -> None:
    self._users: dict[str, _DirectoryEntry] = {}

  def add_user(self, user_id: str, role: str | Enum = UserRole.USER, token: str | None = None) -> None:
    """Seed a user as stored, without the single-owner rule applied on registration."""
    self._users[user_id] = _DirectoryEntry(role=role_value(role), device_token=token)

  async def get_token_for_user(self, user_id: str) -> str | None:
    entry = self._users.get(user_id)
    if entry is None or not entry.device_token or not entry.device_token.strip():
      return None
    return entry.device_token

  async def get_tokens_for_users(self, user_ids: Iterable[str]) -> set[str]:
    tokens: set[str] = set()
    for user_id in set(user_ids):
      token = await self.get_token_for_user(user_id)
      if token:
        tokens.add(token)
    return tokens

  async def get_tokens_for_role(self, role: str | Enum) -> set[str]:
    wanted = role_value(role)
    return {entry.device_token for entry in self._users.values() if entry.role == wanted and entry.device_token and entry.device_token.strip()}

  async def prune_token(self, token: str) -> None:
    for entry in self._users.values():
      if entry.device_token == token:
        entry.device_token = None

  async def set_token_for_user(self, user_id: str, token: str) -> bool:
    normalized = normalize_token(token)
    entry = self._users.get(user_id)
    if entry is None:
      logger.warning("Device token registration ignored; user not found user_id=%s", user_id)
      return False
    for other_id, other in self._users.items():
      if other_id != user_id and other.device_token == normalized:
        other.device_token = None
    entry.device_token = normalized
    return True

  async def clear_token_for_user(self, user_id: str) -> bool:
    entry = self._users.get(user_id)
    if entry is None:
      return False
    entry.device_token = None
    return True
