"""Bookmark host backed by a Chromium-family ``Bookmarks`` profile file.

The file is JSON with three roots (bookmarks bar, other bookmarks, mobile
bookmarks). It is re-read on every call, so node ids are never cached across
runs, and written atomically. The browser keeps its own copy in memory while
running and overwrites the file on exit, so sync against a closed browser.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
import tempfile
import time
import uuid
from pathlib import Path
from typing import Any

from osmosync.domain.exceptions import BookmarkHostError, BookmarkNotFoundError
from osmosync.domain.models import BrowserNode

logger = logging.getLogger(__name__)

ROOT_NODE_ID = "0"
ROOT_KEYS = ("bookmark_bar", "other", "synced")
# Root key to the folderType the browser extension API reports for it
ROOT_FOLDER_TYPES = {"bookmark_bar": "bookmarks-bar", "other": "other", "synced": "mobile"}

# Seconds between 1601-01-01 (Chromium's epoch) and 1970-01-01
_WINDOWS_EPOCH_OFFSET = 11_644_473_600

# Profile directory relative to the per-OS application data folder
SUPPORTED_BROWSERS: dict[str, dict[str, tuple[str, ...]]] = {
    "chrome": {
        "linux": (".config", "google-chrome"),
        "darwin": ("Library", "Application Support", "Google", "Chrome"),
        "win32": ("AppData", "Local", "Google", "Chrome", "User Data"),
    },
    "chromium": {
        "linux": (".config", "chromium"),
        "darwin": ("Library", "Application Support", "Chromium"),
        "win32": ("AppData", "Local", "Chromium", "User Data"),
    },
    "brave": {
        "linux": (".config", "BraveSoftware", "Brave-Browser"),
        "darwin": ("Library", "Application Support", "BraveSoftware", "Brave-Browser"),
        "win32": ("AppData", "Local", "BraveSoftware", "Brave-Browser", "User Data"),
    },
    "edge": {
        "linux": (".config", "microsoft-edge"),
        "darwin": ("Library", "Application Support", "Microsoft Edge"),
        "win32": ("AppData", "Local", "Microsoft", "Edge", "User Data"),
    },
}


def default_bookmarks_path(browser: str = "chrome", profile: str = "Default") -> Path:
    """Locate the ``Bookmarks`` file of a browser profile on this machine."""
    try:
        per_os = SUPPORTED_BROWSERS[browser]
    except KeyError as exc:
        raise BookmarkHostError(f"Unsupported browser: {browser}") from exc

    platform = "win32" if sys.platform.startswith("win") else sys.platform
    if platform not in per_os:
        platform = "linux"
    return Path.home().joinpath(*per_os[platform], profile, "Bookmarks")


def _chrome_timestamp() -> str:
    return str(int((time.time() + _WINDOWS_EPOCH_OFFSET) * 1_000_000))


class ChromiumBookmarkHost:
    """Read and edit the bookmark tree stored in a Chromium profile file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def has_bookmarks_permission(self) -> bool:
        return await asyncio.to_thread(self._check_access)

    async def get_tree(self) -> BrowserNode:
        data = await asyncio.to_thread(self._load)
        roots = data["roots"]
        children = [
            self._to_node(
                roots[key],
                parent_id=ROOT_NODE_ID,
                recursive=True,
                folder_type=ROOT_FOLDER_TYPES[key],
            )
            for key in ROOT_KEYS
            if isinstance(roots.get(key), dict)
        ]
        return BrowserNode(id=ROOT_NODE_ID, title="", children=children)

    async def get_children(self, folder_id: str) -> list[BrowserNode]:
        data = await asyncio.to_thread(self._load)
        if folder_id == ROOT_NODE_ID:
            roots = data["roots"]
            return [
                self._to_node(
                    roots[key], parent_id=ROOT_NODE_ID, folder_type=ROOT_FOLDER_TYPES[key]
                )
                for key in ROOT_KEYS
                if isinstance(roots.get(key), dict)
            ]
        node, _parent = self._find(data, folder_id)
        if node.get("type") != "folder":
            raise BookmarkHostError(f"Node {folder_id} is not a folder")
        return [self._to_node(child, parent_id=folder_id) for child in node.get("children", [])]

    async def create(self, *, parent_id: str, title: str, url: str | None = None) -> BrowserNode:
        async with self._lock:
            return await asyncio.to_thread(self._create_sync, parent_id, title, url)

    async def update(self, node_id: str, *, title: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._update_sync, node_id, title)

    async def remove(self, node_id: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._remove_sync, node_id)

    def _check_access(self) -> bool:
        return self.path.is_file() and os.access(self.path, os.R_OK | os.W_OK)

    def _create_sync(self, parent_id: str, title: str, url: str | None) -> BrowserNode:
        data = self._load()
        parent, _grandparent = self._find(data, parent_id)
        if parent.get("type") != "folder":
            raise BookmarkHostError(f"Cannot create inside non-folder node {parent_id}")

        now = _chrome_timestamp()
        node: dict[str, Any] = {
            "date_added": now,
            "guid": str(uuid.uuid4()),
            "id": str(self._next_id(data)),
            "name": title,
        }
        if url is None:
            node.update({"children": [], "date_modified": "0", "type": "folder"})
        else:
            node.update({"date_last_used": "0", "type": "url", "url": url})
        parent.setdefault("children", []).append(node)
        parent["date_modified"] = now
        self._save(data)

        logger.debug(
            "chromium_bookmark_created",
            extra={"node_id": node["id"], "parent_id": parent_id, "is_folder": url is None},
        )
        return self._to_node(node, parent_id=parent_id)

    def _update_sync(self, node_id: str, title: str) -> None:
        data = self._load()
        node, _parent = self._find(data, node_id)
        node["name"] = title
        if node.get("type") == "folder":
            node["date_modified"] = _chrome_timestamp()
        self._save(data)

    def _remove_sync(self, node_id: str) -> None:
        data = self._load()
        node, parent = self._find(data, node_id)
        if parent is None:
            raise BookmarkHostError(f"Cannot remove root folder {node_id}")
        if node.get("type") == "folder" and node.get("children"):
            raise BookmarkHostError(f"Cannot remove non-empty folder {node_id}")
        parent["children"] = [child for child in parent["children"] if child is not node]
        parent["date_modified"] = _chrome_timestamp()
        self._save(data)

    def _load(self) -> dict[str, Any]:
        try:
            with self.path.open(encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError as exc:
            raise BookmarkHostError(f"Bookmarks file not found at {self.path}") from exc
        except (OSError, json.JSONDecodeError) as exc:
            raise BookmarkHostError(f"Cannot read bookmarks file {self.path}: {exc}") from exc
        if not isinstance(data, dict) or not isinstance(data.get("roots"), dict):
            raise BookmarkHostError(f"Bookmarks file {self.path} has no roots")
        return data

    def _save(self, data: dict[str, Any]) -> None:
        # the stored checksum would no longer match; the browser recomputes it
        data.pop("checksum", None)
        fd, tmp_name = tempfile.mkstemp(prefix=".Bookmarks.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, indent=3)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise BookmarkHostError(f"Cannot write bookmarks file {self.path}: {exc}") from exc

    def _find(
        self, data: dict[str, Any], node_id: str
    ) -> tuple[dict[str, Any], dict[str, Any] | None]:
        """Return ``(node, parent)``; ``parent`` is None for the roots."""
        roots = data["roots"]
        stack: list[tuple[dict[str, Any], dict[str, Any] | None]] = [
            (roots[key], None) for key in ROOT_KEYS if isinstance(roots.get(key), dict)
        ]
        while stack:
            node, parent = stack.pop()
            if str(node.get("id")) == node_id:
                return node, parent
            stack.extend((child, node) for child in node.get("children", []))
        raise BookmarkNotFoundError(f"Bookmark node {node_id} not found")

    @staticmethod
    def _next_id(data: dict[str, Any]) -> int:
        highest = 0
        roots = data["roots"]
        stack = [roots[key] for key in ROOT_KEYS if isinstance(roots.get(key), dict)]
        while stack:
            node = stack.pop()
            raw_id = str(node.get("id", ""))
            if raw_id.isdigit():
                highest = max(highest, int(raw_id))
            stack.extend(node.get("children", []))
        return highest + 1

    def _to_node(
        self,
        raw: dict[str, Any],
        *,
        parent_id: str,
        recursive: bool = False,
        folder_type: str | None = None,
    ) -> BrowserNode:
        is_folder = raw.get("type") == "folder"
        children: list[BrowserNode] | None = None
        if is_folder and recursive:
            node_id = str(raw.get("id"))
            children = [
                self._to_node(child, parent_id=node_id, recursive=True)
                for child in raw.get("children", [])
            ]
        return BrowserNode(
            id=str(raw.get("id")),
            title=raw.get("name", ""),
            url=None if is_folder else raw.get("url", ""),
            parent_id=parent_id,
            folder_type=folder_type,
            children=children,
        )
