"""Flatten a browser bookmark folder into a list of entries."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from osmosync.domain.models import BrowserEntry

if TYPE_CHECKING:
    from osmosync.sync.protocols import BookmarkHost

logger = logging.getLogger(__name__)


async def collect(host: BookmarkHost, folder_id: str) -> list[BrowserEntry]:
    """Return every bookmark below ``folder_id``, descending into sub-folders.

    Output follows the host's child order, depth-first and pre-order. That
    order only shapes generated content; nothing in reconciliation relies on
    it. A host failure on any folder propagates, so callers never see a
    partial snapshot.
    """
    entries: list[BrowserEntry] = []
    await _walk(host, folder_id, entries, visited=set())
    logger.debug(
        "browser_snapshot_collected",
        extra={"folder_id": folder_id, "bookmark_count": len(entries)},
    )
    return entries


async def _walk(
    host: BookmarkHost,
    folder_id: str,
    out: list[BrowserEntry],
    *,
    visited: set[str],
) -> None:
    # a malformed tree may list the same folder twice
    if folder_id in visited:
        logger.warning("browser_snapshot_folder_revisited", extra={"folder_id": folder_id})
        return
    visited.add(folder_id)

    for child in await host.get_children(folder_id):
        if child.url:
            out.append(
                BrowserEntry(
                    title=child.title,
                    href=child.url,
                    node_id=child.id,
                    parent_id=child.parent_id or folder_id,
                )
            )
        elif child.is_folder and child.id:
            await _walk(host, child.id, out, visited=visited)
