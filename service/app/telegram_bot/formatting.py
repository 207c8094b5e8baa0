"""
Markdown -> Telegram HTML conversion for model answers.

The matching model writes plain Markdown (**bold**, *italic*, `code`,
"* item" bullets, "# headings"). Telegram's MarkdownV2 rejects most of that
unescaped, so answers are converted to the small HTML subset Telegram
accepts, with everything else escaped.
"""

from __future__ import annotations

import html
import re

TELEGRAM_MESSAGE_LIMIT = 4096

_CODE_SPAN = re.compile(r"`([^`\n]+)`")
_BOLD = re.compile(r"\*\*(?!\s)(.+?)(?<!\s)\*\*")
_ITALIC = re.compile(r"(?<![\*\w])\*(?![\s\*])([^*\n]+?)(?<![\s\*])\*(?![\*\w])")
_HEADING = re.compile(r"^#{1,6}\s+(.+?)\s*#*$", re.MULTILINE)
_BULLET = re.compile(r"^(\s*)[\*\-]\s+", re.MULTILINE)


def _format_segment(segment: str) -> str:
    text = html.escape(segment, quote=False)
    text = _BULLET.sub(r"\1• ", text)
    text = _HEADING.sub(r"<b>\1</b>", text)
    text = _BOLD.sub(r"<b>\1</b>", text)
    text = _ITALIC.sub(r"<i>\1</i>", text)
    return text


def markdown_to_html(text: str) -> str:
    parts = []
    last = 0
    for match in _CODE_SPAN.finditer(text):
        parts.append(_format_segment(text[last:match.start()]))
        parts.append(f"<code>{html.escape(match.group(1), quote=False)}</code>")
        last = match.end()
    parts.append(_format_segment(text[last:]))
    return "".join(parts)


def _cut_long_line(line: str, limit: int) -> list[str]:
    """Cut an over-long line, preferring the last space before the limit."""
    pieces = []
    while len(line) > limit:
        cut = line.rfind(" ", 0, limit + 1)
        if cut <= 0:
            pieces.append(line[:limit])
            line = line[limit:]
        else:
            pieces.append(line[:cut])
            line = line[cut + 1:]
    pieces.append(line)
    return pieces


def split_message(text: str, limit: int = TELEGRAM_MESSAGE_LIMIT) -> list[str]:
    """
    Split on line boundaries so each part fits one Telegram message.

    Split the Markdown source, then convert each part: a part converted on
    its own never carries half of a tag pair.
    """
    if len(text) <= limit:
        return [text]

    chunks: list[str] = []
    current = ""
    for line in text.split("\n"):
        if len(line) > limit:
            if current:
                chunks.append(current)
            *full, line = _cut_long_line(line, limit)
            chunks.extend(full)
            current = line
            continue
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks
