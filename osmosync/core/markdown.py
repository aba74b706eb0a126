"""Read and write bookmark entries in a Markdown link list.

An entry is a list item whose first token is a link, e.g.::

    - [Example](https://example.com) #reading some description

Anything after the link (tags, notes) is left alone, and lines that are not
entries are ignored. Link destinations may contain balanced parentheses or
be wrapped in ``<...>``; ``format_entry`` uses the angle form whenever the
plain form would not read back as the same href.

Titles round-trip exactly, except that line breaks become spaces because a
list item cannot span lines.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from osmosync.domain.models import Entry

if TYPE_CHECKING:
    from collections.abc import Iterable

_PLAIN_HREF = r"(?:[^()\s]|\([^()\s]*\))+"
_ANGLE_HREF = r"(?:\\[^\n]|[^<>\\\n])*"

ENTRY_PATTERN = re.compile(
    r"^[ \t]*[-*+][ \t]+\[(?P<title>(?:\\[^\n]|[^\]\\\n])*)\]"
    rf"\((?:<(?P<angle_href>{_ANGLE_HREF})>|(?P<href>{_PLAIN_HREF}))\)",
    re.MULTILINE,
)
_PLAIN_HREF_FULL = re.compile(_PLAIN_HREF)
_UNESCAPE_TITLE = re.compile(r"\\([\[\]\\])")
_UNESCAPE_HREF = re.compile(r"\\([<>\\])")
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def _unescape_title(raw: str) -> str:
    return _UNESCAPE_TITLE.sub(r"\1", raw)


def _escape_title(title: str) -> str:
    title = _LINE_BREAK.sub(" ", title)
    return title.replace("\\", "\\\\").replace("[", "\\[").replace("]", "\\]")


def _href_of(match: re.Match[str]) -> str:
    angle = match.group("angle_href")
    if angle is not None:
        return _UNESCAPE_HREF.sub(r"\1", angle)
    return match.group("href")


def _format_href(href: str) -> str:
    if not href.startswith("<") and _PLAIN_HREF_FULL.fullmatch(href):
        return href
    escaped = href.replace("\\", "\\\\").replace("<", "\\<").replace(">", "\\>")
    return f"<{_LINE_BREAK.sub('', escaped)}>"


def parse_all_entries(text: str | None) -> list[Entry]:
    """Return every entry in ``text`` in document order."""
    if not text:
        return []
    return [
        Entry(title=_unescape_title(match.group("title")), href=_href_of(match))
        for match in ENTRY_PATTERN.finditer(text)
    ]


def format_entry(entry: Entry) -> str:
    return f"- [{_escape_title(entry.title)}]({_format_href(entry.href)})"


def prepend_entries(text: str | None, entries: Iterable[Entry]) -> str:
    """Insert ``entries`` ahead of the existing entries of ``text``.

    New lines go directly above the first entry so headings and intro text
    stay on top. A document without entries gets them appended after its
    existing text. Entries whose href is already in ``text`` are skipped,
    which keeps the result stable when applied to a newer revision.
    """
    existing = text or ""
    present = {entry.href for entry in parse_all_entries(existing)}
    lines: list[str] = []
    for entry in entries:
        if entry.href in present:
            continue
        present.add(entry.href)
        lines.append(format_entry(entry))

    if not lines:
        return existing

    block = "\n".join(lines) + "\n"
    first = ENTRY_PATTERN.search(existing)
    if first is not None:
        return existing[: first.start()] + block + existing[first.start() :]
    if not existing.strip():
        return block
    separator = "" if existing.endswith("\n") else "\n"
    return existing + separator + block
