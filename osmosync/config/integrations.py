from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from osmosync.adapters.bookmarks.chromium import SUPPORTED_BROWSERS
from osmosync.domain.models import SyncMode

from ._validators import _clean_optional, _parse_bool

logger = logging.getLogger(__name__)

DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_FILENAME = "README.md"


class GitHubConfig(BaseModel):
    """Where the Markdown bookmark list lives and how to reach it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    access_token: str = Field(default="", validation_alias="OSMOS_ACCESS_TOKEN")
    username: str = Field(default="", validation_alias="OSMOS_USERNAME")
    repo: str = Field(default="", validation_alias="OSMOS_REPO")
    filename: str = Field(default=DEFAULT_FILENAME, validation_alias="OSMOS_FILENAME")
    branch: str | None = Field(default=None, validation_alias="OSMOS_BRANCH")
    api_url: str = Field(default=DEFAULT_GITHUB_API_URL, validation_alias="OSMOS_GITHUB_API_URL")
    timeout_sec: float = Field(default=30.0, validation_alias="OSMOS_GITHUB_TIMEOUT_SEC")

    @field_validator("access_token", mode="before")
    @classmethod
    def _validate_access_token(cls, value: Any) -> str:
        if value in (None, ""):
            return ""
        token = str(value).strip()
        if len(token) > 500:
            msg = "GitHub access token appears to be too long"
            raise ValueError(msg)
        if any(char in token for char in (" ", "\n", "\t")):
            msg = "GitHub access token contains invalid characters"
            raise ValueError(msg)
        return token

    @field_validator("username", "repo", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("filename", mode="before")
    @classmethod
    def _validate_filename(cls, value: Any) -> str:
        name = str(value or DEFAULT_FILENAME).strip().lstrip("/")
        if not name:
            return DEFAULT_FILENAME
        if ".." in name.split("/"):
            msg = "Filename must not contain '..' segments"
            raise ValueError(msg)
        return name

    @field_validator("branch", mode="before")
    @classmethod
    def _validate_branch(cls, value: Any) -> str | None:
        return _clean_optional(value)

    @field_validator("api_url", mode="before")
    @classmethod
    def _validate_api_url(cls, value: Any) -> str:
        url = str(value or DEFAULT_GITHUB_API_URL).strip()
        if not url.startswith(("http://", "https://")):
            msg = "GitHub API URL must start with http:// or https://"
            raise ValueError(msg)
        return url.rstrip("/")

    @field_validator("timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        try:
            timeout = float(str(value if value not in (None, "") else 30))
        except ValueError as exc:
            msg = "GitHub timeout must be a number"
            raise ValueError(msg) from exc
        if timeout <= 0 or timeout > 600:
            msg = "GitHub timeout must be between 0 and 600 seconds"
            raise ValueError(msg)
        return timeout

    @property
    def is_complete(self) -> bool:
        return bool(self.access_token and self.username and self.repo)


class BookmarksSyncConfig(BaseModel):
    """Which browser profile to mirror, in which mode, and how often."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sync_to_bookmarks_bar: bool = Field(
        default=False, validation_alias="OSMOS_SYNC_TO_BOOKMARKS_BAR"
    )
    sync_mode: SyncMode = Field(default=SyncMode.BAR, validation_alias="OSMOS_BOOKMARKS_SYNC_MODE")
    sync_interval_minutes: int = Field(
        default=0, validation_alias="OSMOS_BOOKMARKS_SYNC_INTERVAL_MINUTES"
    )
    bookmarks_file: str | None = Field(default=None, validation_alias="OSMOS_BOOKMARKS_FILE")
    browser: str = Field(default="chrome", validation_alias="OSMOS_BROWSER")
    profile: str = Field(default="Default", validation_alias="OSMOS_BROWSER_PROFILE")

    @field_validator("sync_to_bookmarks_bar", mode="before")
    @classmethod
    def _validate_enabled(cls, value: Any) -> bool:
        return _parse_bool(value, default=False)

    @field_validator("sync_mode", mode="before")
    @classmethod
    def _validate_sync_mode(cls, value: Any) -> SyncMode:
        if isinstance(value, SyncMode):
            return value
        raw = str(value or "bar").strip().lower()
        try:
            return SyncMode(raw)
        except ValueError as exc:
            msg = f"Invalid bookmarks sync mode: {raw}. Must be 'bar' or 'folder'"
            raise ValueError(msg) from exc

    @field_validator("sync_interval_minutes", mode="before")
    @classmethod
    def _validate_interval(cls, value: Any) -> int:
        # zero or negative switches the timer off
        if value in (None, ""):
            return 0
        try:
            return int(str(value).strip())
        except ValueError as exc:
            msg = "Bookmarks sync interval must be a whole number of minutes"
            raise ValueError(msg) from exc

    @field_validator("bookmarks_file", mode="before")
    @classmethod
    def _validate_bookmarks_file(cls, value: Any) -> str | None:
        path = _clean_optional(value)
        if path is not None and "\x00" in path:
            msg = "Bookmarks file path contains invalid characters"
            raise ValueError(msg)
        return path

    @field_validator("browser", mode="before")
    @classmethod
    def _validate_browser(cls, value: Any) -> str:
        browser = str(value or "chrome").strip().lower()
        if browser not in SUPPORTED_BROWSERS:
            msg = f"Unsupported browser: {browser}. Must be one of {sorted(SUPPORTED_BROWSERS)}"
            raise ValueError(msg)
        return browser

    @field_validator("profile", mode="before")
    @classmethod
    def _validate_profile(cls, value: Any) -> str:
        return str(value or "Default").strip() or "Default"

    @property
    def timer_enabled(self) -> bool:
        return self.sync_to_bookmarks_bar and self.sync_interval_minutes > 0
