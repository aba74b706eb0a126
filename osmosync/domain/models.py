"""Core value types shared by the sync engine and its adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field, computed_field

OSMOS_FOLDER_TITLE = "osmosmemo"
BOOKMARKS_BAR_FOLDER_TYPE = "bookmarks-bar"


@dataclass(frozen=True, slots=True)
class Entry:
    """A single bookmark record, identified by ``href``."""

    title: str
    href: str


@dataclass(frozen=True, slots=True)
class BrowserEntry(Entry):
    """An entry read from the browser, carrying the host identity of its node.

    Host identities do not take part in equality: two browser entries with
    the same title and href are the same bookmark as far as the sync goes.
    """

    node_id: str = field(compare=False)
    parent_id: str | None = field(default=None, compare=False)


class BrowserNode(BaseModel):
    """A node of the browser bookmark tree: a folder or a bookmark."""

    id: str
    title: str = ""
    url: str | None = None
    parent_id: str | None = Field(default=None, alias="parentId")
    folder_type: str | None = Field(default=None, alias="folderType")
    children: list[BrowserNode] | None = None

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @property
    def is_folder(self) -> bool:
        return self.url is None


class SyncMode(str, Enum):
    """Where browser bookmarks are mirrored."""

    BAR = "bar"
    FOLDER = "folder"


class SyncStatus(str, Enum):
    """Terminal status of one sync invocation."""

    OK = "ok"
    SKIPPED = "skipped"
    ERROR = "error"


class SyncResult(BaseModel):
    """Outcome of one sync invocation. Returned to the caller, never persisted."""

    status: SyncStatus
    message: str
    mode: SyncMode | None = None
    imported: int = 0
    created: int = 0
    updated: int = 0
    removed: int = 0
    correlation_id: str | None = None
    duration_seconds: float = 0.0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_changes(self) -> int:
        return self.imported + self.created + self.updated + self.removed
