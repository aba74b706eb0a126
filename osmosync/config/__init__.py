from __future__ import annotations

from .integrations import BookmarksSyncConfig, GitHubConfig
from .settings import AppConfig, RuntimeConfig, Settings, load_config

__all__ = [
    "AppConfig",
    "BookmarksSyncConfig",
    "GitHubConfig",
    "RuntimeConfig",
    "Settings",
    "load_config",
]
