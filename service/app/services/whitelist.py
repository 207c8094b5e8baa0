"""
Whitelist gate.

Group chats are checked by chat id, direct messages by user id. The
whitelist is loaded once at startup and passed into every check.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from app.config import Settings, parse_csv


class ChatKind(str, Enum):
    DIRECT = "direct"
    GROUP = "group"

    @classmethod
    def from_telegram(cls, chat_type: str) -> "ChatKind":
        """Telegram chat types "group" and "supergroup" are groups."""
        if chat_type in ("group", "supergroup"):
            return cls.GROUP
        return cls.DIRECT


class AuthorizationResult(str, Enum):
    AUTHORIZED = "authorized"
    DENIED = "denied"


@dataclass(frozen=True)
class AuthorizationContext:
    chat_id: int
    user_id: int | None
    chat_kind: ChatKind

    @property
    def is_group(self) -> bool:
        return self.chat_kind is ChatKind.GROUP


def _parse_ids(values: Iterable[str], setting_name: str) -> frozenset[int]:
    ids = set()
    for value in values:
        try:
            ids.add(int(value))
        except ValueError:
            raise ValueError(f"{setting_name}: '{value}' is not a decimal id") from None
    return frozenset(ids)


@dataclass(frozen=True)
class Whitelist:
    group_chat_ids: frozenset[int] = frozenset()
    user_ids: frozenset[int] = frozenset()

    @classmethod
    def from_strings(cls, group_chat_ids: str, user_ids: str) -> "Whitelist":
        """Build from two comma-separated id lists, e.g. "-1001,-1002"."""
        return cls(
            group_chat_ids=_parse_ids(parse_csv(group_chat_ids), "allowed_group_chat_ids"),
            user_ids=_parse_ids(parse_csv(user_ids), "allowed_user_ids"),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Whitelist":
        return cls.from_strings(settings.allowed_group_chat_ids, settings.allowed_user_ids)


def authorize(whitelist: Whitelist, context: AuthorizationContext) -> AuthorizationResult:
    """Exact-membership check; no wildcards, no partial matches."""
    if context.is_group:
        allowed = context.chat_id in whitelist.group_chat_ids
    else:
        allowed = context.user_id is not None and context.user_id in whitelist.user_ids
    return AuthorizationResult.AUTHORIZED if allowed else AuthorizationResult.DENIED
