"""
Query intent extraction.

Pulls the literal request out of a message (dropping the bot mention in
group chats) and detects the "show everyone" intent, which only raises the
number of results the matching model may return.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from app.services.whitelist import ChatKind

DEFAULT_RESULT_CEILING = 5
SHOW_ALL_RESULT_CEILING = 20

# Synonyms for "show everything". Add new phrasings here.
SHOW_ALL_PATTERNS: list[re.Pattern] = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\bshow\s+(?:me\s+)?all\b",
        r"\bshow\s+(?:me\s+)?everyone\b",
        r"\bgive\s+me\s+everyone\b",
        r"\blist\s+all\b",
        r"\blist\s+everyone\b",
        r"\bпокажи\s+все\b",
        r"\bпокажи\s+всех\b",
        r"\bдай\s+всех\b",
        r"\bсписок\s+всех\b",
        r"\bвыведи\s+всех\b",
        r"\bперечисли\s+всех\b",
    )
]


@dataclass(frozen=True)
class ExtractedQuery:
    raw_text: str
    text: str
    show_all: bool

    @property
    def is_empty(self) -> bool:
        return not self.text

    @property
    def result_ceiling(self) -> int:
        return SHOW_ALL_RESULT_CEILING if self.show_all else DEFAULT_RESULT_CEILING


def wants_all_results(text: str) -> bool:
    return any(pattern.search(text) for pattern in SHOW_ALL_PATTERNS)


def strip_mention(text: str, bot_username: str) -> str:
    """Remove every case-insensitive @bot_username occurrence."""
    mention = "@" + bot_username.lstrip("@")
    return re.sub(re.escape(mention), "", text, flags=re.IGNORECASE)


def extract_query(raw_text: str | None, chat_kind: ChatKind, bot_username: str) -> ExtractedQuery:
    raw_text = raw_text or ""
    if chat_kind is ChatKind.GROUP:
        text = strip_mention(raw_text, bot_username).strip()
    else:
        text = raw_text.strip()
    return ExtractedQuery(
        raw_text=raw_text,
        text=text,
        show_all=bool(text) and wants_all_results(text),
    )
