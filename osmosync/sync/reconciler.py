"""Bidirectional reconciliation between the remote document and the browser.

The work is split into two pure phases so each can be tested on its own:

* absorb (``plan_import``): browser bookmarks missing from the document are
  imported into it. This direction is additive only.
* project (``plan_projection``): the post-import document is the target and
  the browser folder is brought in line with it. In folder mode this is a full
  mirror; in bar mode nothing is ever removed.

Absorb must be applied before project is computed, otherwise a freshly
bookmarked page would look "missing from the document" and be deleted.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from osmosync.domain.models import Entry, SyncMode
from osmosync.sync.entry_set import EntrySet
from osmosync.sync.plan import BrowserPlan, BrowserRemoval, BrowserUpdate, MutationPlan

if TYPE_CHECKING:
    from collections.abc import Sequence

    from osmosync.domain.models import BrowserEntry

logger = logging.getLogger(__name__)


def plan_import(remote_entries: Sequence[Entry], browser_entries: Sequence[Entry]) -> list[Entry]:
    """Browser entries absent (by href) from the remote document, in browser order."""
    remote = EntrySet.from_sequence(remote_entries)
    missing = EntrySet.from_sequence(browser_entries).difference(remote)
    return [Entry(title=entry.title, href=entry.href) for entry in EntrySet(missing).unique()]


def plan_projection(
    target_entries: Sequence[Entry],
    current_entries: Sequence[BrowserEntry],
    mode: SyncMode,
) -> BrowserPlan:
    """Mutations that make the browser folder match ``target_entries``.

    Creates follow document order and happen once per href, using the last
    title the document gives that href. Updates and removals follow the order
    the browser snapshot was discovered in.
    """
    target = EntrySet.from_sequence(target_entries)
    current = EntrySet.from_sequence(current_entries)

    to_create: list[Entry] = []
    to_update: list[BrowserUpdate] = []
    for entry in target.unique():
        existing = current.get(entry.href)
        if existing is None:
            to_create.append(Entry(title=entry.title, href=entry.href))
        elif existing.title != entry.title:
            to_update.append(
                BrowserUpdate(
                    node_id=existing.node_id,
                    href=entry.href,
                    old_title=existing.title,
                    new_title=entry.title,
                )
            )

    to_remove: list[BrowserRemoval] = []
    if mode is SyncMode.FOLDER:
        wanted = target.urls()
        to_remove = [
            BrowserRemoval(node_id=node.node_id, href=node.href, title=node.title)
            for node in current
            if node.href not in wanted
        ]

    return BrowserPlan(to_create=to_create, to_update=to_update, to_remove=to_remove)


def build_plan(
    remote_entries: Sequence[Entry],
    browser_entries: Sequence[BrowserEntry],
    mode: SyncMode,
) -> MutationPlan:
    """Both phases without touching the remote store.

    The post-import target is reconstructed locally (imports first, then the
    document), which is only good enough for a preview. A real run re-parses
    whatever the store actually committed.
    """
    to_import = plan_import(remote_entries, browser_entries)
    target = [*to_import, *remote_entries]
    browser = plan_projection(target, browser_entries, mode)
    logger.debug(
        "mutation_plan_built",
        extra={
            "mode": mode.value,
            "to_import": len(to_import),
            "to_create": len(browser.to_create),
            "to_update": len(browser.to_update),
            "to_remove": len(browser.to_remove),
        },
    )
    return MutationPlan(mode=mode, to_import=to_import, browser=browser)
