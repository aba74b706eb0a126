"""Mutation plan value types produced by the reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass, field

from osmosync.domain.models import Entry, SyncMode


@dataclass(frozen=True, slots=True)
class BrowserUpdate:
    """Retitle an existing browser bookmark."""

    node_id: str
    href: str
    old_title: str
    new_title: str


@dataclass(frozen=True, slots=True)
class BrowserRemoval:
    """Delete a browser bookmark whose href left the remote document."""

    node_id: str
    href: str
    title: str


@dataclass(frozen=True, slots=True)
class BrowserPlan:
    """Phase 2 output: what the browser folder needs to match the document."""

    to_create: list[Entry] = field(default_factory=list)
    to_update: list[BrowserUpdate] = field(default_factory=list)
    to_remove: list[BrowserRemoval] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_create or self.to_update or self.to_remove)


@dataclass(frozen=True, slots=True)
class MutationPlan:
    """Both phases together, as shown by a preview."""

    mode: SyncMode
    to_import: list[Entry] = field(default_factory=list)
    browser: BrowserPlan = field(default_factory=BrowserPlan)

    @property
    def to_create(self) -> list[Entry]:
        return self.browser.to_create

    @property
    def to_update(self) -> list[BrowserUpdate]:
        return self.browser.to_update

    @property
    def to_remove(self) -> list[BrowserRemoval]:
        return self.browser.to_remove

    @property
    def is_empty(self) -> bool:
        return not self.to_import and self.browser.is_empty
