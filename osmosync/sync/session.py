"""Sync session controller: guard, gates, I/O around the reconciliation engine."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from osmosync.adapters.bookmarks.chromium import ChromiumBookmarkHost, default_bookmarks_path
from osmosync.adapters.github.client import GitHubContentClient
from osmosync.config import load_config
from osmosync.core.logging_utils import generate_correlation_id
from osmosync.core.markdown import parse_all_entries, prepend_entries
from osmosync.domain.models import (
    BOOKMARKS_BAR_FOLDER_TYPE,
    OSMOS_FOLDER_TITLE,
    SyncMode,
    SyncResult,
    SyncStatus,
)
from osmosync.sync.collector import collect
from osmosync.sync.plan import BrowserPlan, MutationPlan
from osmosync.sync.reconciler import build_plan, plan_import, plan_projection
from osmosync.sync.report import compose_error_message, compose_message

if TYPE_CHECKING:
    from collections.abc import Callable

    from osmosync.config import AppConfig, BookmarksSyncConfig
    from osmosync.domain.models import Entry
    from osmosync.sync.protocols import BookmarkHost, RemoteStoreFactory, SettingsProvider

logger = logging.getLogger(__name__)

SYNC_IN_PROGRESS = "Sync already in progress"
SYNC_DISABLED = "Bookmarks sync is disabled"
PERMISSION_MISSING = "Bookmarks permission not granted"
CREDENTIALS_INCOMPLETE = "GitHub credentials are incomplete"
BAR_NOT_FOUND = "Bookmarks bar not found"


def host_from_config(config: BookmarksSyncConfig) -> BookmarkHost:
    path = config.bookmarks_file or default_bookmarks_path(config.browser, config.profile)
    return ChromiumBookmarkHost(path)


@dataclass(slots=True)
class _Progress:
    imported: int = 0
    created: int = 0
    updated: int = 0
    removed: int = 0


@dataclass(slots=True)
class _Session:
    config: AppConfig
    host: BookmarkHost
    mode: SyncMode
    correlation_id: str


class SyncSessionController:
    """Runs one reconciliation at a time between the browser and the remote document.

    A second request while a run is in flight is rejected with a skipped
    result, not queued. Configuration and the host are resolved anew for every
    run, so nothing about the browser tree survives between runs.
    """

    def __init__(
        self,
        *,
        settings_provider: SettingsProvider = load_config,
        host_factory: Callable[[BookmarksSyncConfig], BookmarkHost] = host_from_config,
        remote_store_factory: RemoteStoreFactory = GitHubContentClient,
    ) -> None:
        self._settings_provider = settings_provider
        self._host_factory = host_factory
        self._remote_store_factory = remote_store_factory
        self._guard = asyncio.Lock()

    @property
    def is_syncing(self) -> bool:
        return self._guard.locked()

    async def sync(self, markdown: str | None = None, *, trigger: str = "manual") -> SyncResult:
        """Reconcile both sides and report what changed.

        Args:
            markdown: Document text the caller already has; skips the remote fetch.
            trigger: Where the request came from, for logging ("timer", "message", ...).
        """
        # check-then-acquire is atomic: acquiring a free asyncio.Lock never suspends
        if self._guard.locked():
            logger.info("bookmarks_sync_skipped_in_progress", extra={"trigger": trigger})
            return SyncResult(status=SyncStatus.SKIPPED, message=SYNC_IN_PROGRESS)

        async with self._guard:
            start_time = time.time()
            result = await self._run(markdown, trigger=trigger)
            result.duration_seconds = time.time() - start_time

        log = logger.warning if result.status is SyncStatus.ERROR else logger.info
        log(
            "bookmarks_sync_finished",
            extra={
                "correlation_id": result.correlation_id,
                "trigger": trigger,
                "status": result.status.value,
                "mode": result.mode.value if result.mode else None,
                "imported": result.imported,
                "created_count": result.created,
                "updated": result.updated,
                "removed": result.removed,
                "duration": result.duration_seconds,
                "sync_message": result.message,
            },
        )
        return result

    async def preview(
        self, markdown: str | None = None
    ) -> tuple[SyncResult, MutationPlan | None]:
        """Compute the full mutation plan without writing anything."""
        if self._guard.locked():
            return SyncResult(status=SyncStatus.SKIPPED, message=SYNC_IN_PROGRESS), None

        async with self._guard:
            opened = await self._open_session()
            if isinstance(opened, SyncResult):
                return opened, None
            session = opened

            try:
                target_id = await self._resolve_target_folder(session, create_missing=False)
                if target_id is None:
                    return self._error(session, BAR_NOT_FOUND, _Progress()), None
                browser_entries = await collect(session.host, target_id) if target_id else []
                if markdown is None:
                    async with self._remote_store_factory(session.config.github) as store:
                        markdown = await store.get_content()
            except Exception as exc:
                logger.exception(
                    "bookmarks_preview_failed",
                    extra={"correlation_id": session.correlation_id},
                )
                return self._error(session, exc, _Progress()), None

            plan = build_plan(parse_all_entries(markdown), browser_entries, session.mode)
            result = SyncResult(
                status=SyncStatus.OK,
                message=compose_message(
                    imported=len(plan.to_import),
                    created=len(plan.to_create),
                    updated=len(plan.to_update),
                    removed=len(plan.to_remove),
                    mode=session.mode,
                ),
                mode=session.mode,
                imported=len(plan.to_import),
                created=len(plan.to_create),
                updated=len(plan.to_update),
                removed=len(plan.to_remove),
                correlation_id=session.correlation_id,
            )
            return result, plan

    async def _open_session(self) -> _Session | SyncResult:
        """Resolve configuration and host, or return the early-exit result."""
        correlation_id = generate_correlation_id()
        try:
            config = self._settings_provider()
        except RuntimeError as exc:
            logger.error(
                "bookmarks_sync_config_invalid",
                extra={"correlation_id": correlation_id, "error": str(exc)},
            )
            return SyncResult(
                status=SyncStatus.ERROR, message=str(exc), correlation_id=correlation_id
            )
        except Exception as exc:
            logger.exception(
                "bookmarks_sync_config_unreadable", extra={"correlation_id": correlation_id}
            )
            return SyncResult(
                status=SyncStatus.ERROR,
                message=compose_error_message(exc),
                correlation_id=correlation_id,
            )

        mode = config.bookmarks.sync_mode
        if not config.bookmarks.sync_to_bookmarks_bar:
            return self._skipped(SYNC_DISABLED, mode, correlation_id)

        try:
            host = self._host_factory(config.bookmarks)
            permitted = await host.has_bookmarks_permission()
        except Exception as exc:
            logger.exception(
                "bookmarks_host_unavailable", extra={"correlation_id": correlation_id}
            )
            return SyncResult(
                status=SyncStatus.ERROR,
                message=compose_error_message(exc),
                mode=mode,
                correlation_id=correlation_id,
            )
        if not permitted:
            return self._skipped(PERMISSION_MISSING, mode, correlation_id)

        if not config.github.is_complete:
            return self._skipped(CREDENTIALS_INCOMPLETE, mode, correlation_id)

        return _Session(config=config, host=host, mode=mode, correlation_id=correlation_id)

    async def _run(self, markdown: str | None, *, trigger: str) -> SyncResult:
        opened = await self._open_session()
        if isinstance(opened, SyncResult):
            return opened
        session = opened
        progress = _Progress()

        logger.info(
            "bookmarks_sync_start",
            extra={
                "correlation_id": session.correlation_id,
                "trigger": trigger,
                "mode": session.mode.value,
                "markdown_supplied": markdown is not None,
            },
        )

        try:
            target_id = await self._resolve_target_folder(session, create_missing=True)
            if target_id is None:
                return self._error(session, BAR_NOT_FOUND, progress)

            browser_entries = await collect(session.host, target_id)

            async with self._remote_store_factory(session.config.github) as store:
                if markdown is None:
                    markdown = await store.get_content()
                remote_entries = parse_all_entries(markdown)

                to_import = plan_import(remote_entries, browser_entries)
                if to_import:
                    remote_entries = await self._absorb(store, to_import, session)
                    progress.imported = len(to_import)

            browser_plan = plan_projection(remote_entries, browser_entries, session.mode)
            await self._project(session, target_id, browser_plan, progress)
        except Exception as exc:
            logger.exception(
                "bookmarks_sync_failed",
                extra={
                    "correlation_id": session.correlation_id,
                    "imported": progress.imported,
                    "created_count": progress.created,
                    "updated": progress.updated,
                    "removed": progress.removed,
                },
            )
            return self._error(session, exc, progress)

        return SyncResult(
            status=SyncStatus.OK,
            message=compose_message(
                imported=progress.imported,
                created=progress.created,
                updated=progress.updated,
                removed=progress.removed,
                mode=session.mode,
            ),
            mode=session.mode,
            imported=progress.imported,
            created=progress.created,
            updated=progress.updated,
            removed=progress.removed,
            correlation_id=session.correlation_id,
        )

    async def _absorb(self, store, to_import: list[Entry], session: _Session) -> list[Entry]:
        """Write browser-only entries into the document; return the committed entries."""
        noun = "bookmark" if len(to_import) == 1 else "bookmarks"
        final_text = await store.update_content(
            lambda existing: prepend_entries(existing, to_import),
            message=f"Import {len(to_import)} {noun} from browser",
        )
        logger.info(
            "bookmarks_imported_to_remote",
            extra={"correlation_id": session.correlation_id, "count": len(to_import)},
        )
        # the store decides the final layout; trust what it committed
        return parse_all_entries(final_text)

    async def _project(
        self,
        session: _Session,
        target_id: str,
        plan: BrowserPlan,
        progress: _Progress,
    ) -> None:
        host = session.host
        for entry in plan.to_create:
            await host.create(parent_id=target_id, title=entry.title, url=entry.href)
            progress.created += 1
        for update in plan.to_update:
            await host.update(update.node_id, title=update.new_title)
            progress.updated += 1
        for removal in plan.to_remove:
            await host.remove(removal.node_id)
            progress.removed += 1

    async def _resolve_target_folder(
        self, session: _Session, *, create_missing: bool
    ) -> str | None:
        """Return the id of the folder to mirror.

        ``None`` means the bookmarks bar itself is missing. An empty string is
        returned when the dedicated folder does not exist and may not be created.
        """
        host = session.host
        tree = await host.get_tree()
        roots = tree.children or []
        bar = next((root for root in roots if root.folder_type == BOOKMARKS_BAR_FOLDER_TYPE), None)
        if bar is None:
            return None
        if session.mode is SyncMode.BAR:
            return bar.id

        children = bar.children if bar.children is not None else await host.get_children(bar.id)
        for child in children:
            if child.is_folder and child.title == OSMOS_FOLDER_TITLE:
                return child.id
        if not create_missing:
            return ""

        folder = await host.create(parent_id=bar.id, title=OSMOS_FOLDER_TITLE)
        logger.info(
            "bookmarks_folder_created",
            extra={"correlation_id": session.correlation_id, "folder_id": folder.id},
        )
        return folder.id

    @staticmethod
    def _skipped(message: str, mode: SyncMode, correlation_id: str) -> SyncResult:
        logger.info(
            "bookmarks_sync_skipped",
            extra={"correlation_id": correlation_id, "reason": message},
        )
        return SyncResult(
            status=SyncStatus.SKIPPED, message=message, mode=mode, correlation_id=correlation_id
        )

    @staticmethod
    def _error(session: _Session, error: BaseException | str, progress: _Progress) -> SyncResult:
        if isinstance(error, str):
            message = error
        else:
            message = compose_error_message(
                error,
                imported=progress.imported,
                created=progress.created,
                updated=progress.updated,
                removed=progress.removed,
                mode=session.mode,
            )
        return SyncResult(
            status=SyncStatus.ERROR,
            message=message,
            mode=session.mode,
            imported=progress.imported,
            created=progress.created,
            updated=progress.updated,
            removed=progress.removed,
            correlation_id=session.correlation_id,
        )
