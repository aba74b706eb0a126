"""Protocol definitions (ports) for the sync session.

The controller depends only on these, so reconciliation can be exercised
with in-memory fakes instead of a real browser profile or GitHub.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable
    from contextlib import AbstractAsyncContextManager

    from osmosync.config import AppConfig
    from osmosync.config.integrations import GitHubConfig
    from osmosync.domain.models import BrowserNode


class BookmarkHost(Protocol):
    async def has_bookmarks_permission(self) -> bool: ...

    async def get_tree(self) -> BrowserNode: ...

    async def get_children(self, folder_id: str) -> list[BrowserNode]: ...

    async def create(
        self, *, parent_id: str, title: str, url: str | None = None
    ) -> BrowserNode: ...

    async def update(self, node_id: str, *, title: str) -> None: ...

    async def remove(self, node_id: str) -> None: ...


class RemoteStore(Protocol):
    async def get_content(self) -> str: ...

    async def update_content(
        self,
        transform: Callable[[str | None], str],
        *,
        message: str,
    ) -> str: ...


class RemoteStoreFactory(Protocol):
    def __call__(self, config: GitHubConfig) -> AbstractAsyncContextManager[RemoteStore]: ...


class SettingsProvider(Protocol):
    def __call__(self) -> AppConfig: ...
