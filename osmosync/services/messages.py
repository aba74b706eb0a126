"""Runtime message handling: the request/response surface other processes talk to."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from osmosync.config import load_config
from osmosync.domain.models import SyncStatus

if TYPE_CHECKING:
    from osmosync.services.scheduler import SyncScheduler
    from osmosync.sync.protocols import SettingsProvider
    from osmosync.sync.session import SyncSessionController

logger = logging.getLogger(__name__)


class SyncBookmarksNow(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    type: Literal["SYNC_BOOKMARKS_NOW"]
    markdown_string: str | None = Field(default=None, alias="markdownString")


class SyncSettingsChanged(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["SYNC_SETTINGS_CHANGED"]


Message = Annotated[SyncBookmarksNow | SyncSettingsChanged, Field(discriminator="type")]
_message_adapter: TypeAdapter[SyncBookmarksNow | SyncSettingsChanged] = TypeAdapter(Message)


class MessageRouter:
    """Dispatch ``{"type": ...}`` messages to the controller and the scheduler.

    ``handle`` never raises: invalid payloads and handler failures come back
    as ``{"success": False, "error": ...}``.
    """

    def __init__(
        self,
        controller: SyncSessionController,
        scheduler: SyncScheduler,
        *,
        settings_provider: SettingsProvider = load_config,
    ) -> None:
        self.controller = controller
        self.scheduler = scheduler
        self._settings_provider = settings_provider

    async def handle(self, message: dict[str, Any]) -> dict[str, Any]:
        try:
            parsed = _message_adapter.validate_python(message)
        except ValidationError as exc:
            logger.warning(
                "message_rejected",
                extra={"message_type": _message_type(message), "errors": exc.error_count()},
            )
            return {"success": False, "error": f"Invalid message: {_first_error(exc)}"}

        logger.debug("message_received", extra={"message_type": parsed.type})
        if isinstance(parsed, SyncBookmarksNow):
            return await self._sync_now(parsed)
        return self._settings_changed()

    async def _sync_now(self, message: SyncBookmarksNow) -> dict[str, Any]:
        result = await self.controller.sync(message.markdown_string, trigger="message")
        payload = result.model_dump(mode="json")
        payload["success"] = result.status is not SyncStatus.ERROR
        return payload

    def _settings_changed(self) -> dict[str, Any]:
        try:
            config = self._settings_provider()
        except Exception as exc:
            logger.exception("settings_reload_failed")
            return {"success": False, "error": str(exc) or type(exc).__name__}
        self.scheduler.apply_settings(config.bookmarks)
        return {"success": True}


def _message_type(message: Any) -> str | None:
    if isinstance(message, dict):
        value = message.get("type")
        return value if isinstance(value, str) else None
    return None


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]
