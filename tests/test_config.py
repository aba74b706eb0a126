"""Tests for configuration loading from the environment and .env files."""

from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from osmosync.config import BookmarksSyncConfig, GitHubConfig, load_config
from osmosync.domain.models import SyncMode


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.env_file = Path(self._tmp.name) / ".env"

    def tearDown(self):
        self._tmp.cleanup()

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = load_config(env_file=str(self.env_file))

        assert config.github.filename == "README.md"
        assert config.github.api_url == "https://api.github.com"
        assert config.github.branch is None
        assert not config.github.is_complete
        assert config.bookmarks.sync_to_bookmarks_bar is False
        assert config.bookmarks.sync_mode is SyncMode.BAR
        assert config.bookmarks.sync_interval_minutes == 0
        assert config.runtime.log_level == "INFO"

    def test_reads_environment(self):
        env = {
            "OSMOS_ACCESS_TOKEN": "ghp_abc",
            "OSMOS_USERNAME": "octo",
            "OSMOS_REPO": "memo",
            "OSMOS_FILENAME": "/links.md",
            "OSMOS_SYNC_TO_BOOKMARKS_BAR": "yes",
            "OSMOS_BOOKMARKS_SYNC_MODE": "Folder",
            "OSMOS_BOOKMARKS_SYNC_INTERVAL_MINUTES": "15",
            "OSMOS_BROWSER": "Brave",
            "LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, env, clear=True):
            config = load_config(env_file=str(self.env_file))

        assert config.github.is_complete
        assert config.github.filename == "links.md"
        assert config.bookmarks.sync_to_bookmarks_bar is True
        assert config.bookmarks.sync_mode is SyncMode.FOLDER
        assert config.bookmarks.timer_enabled
        assert config.bookmarks.browser == "brave"
        assert config.runtime.log_level == "DEBUG"

    def test_env_file_is_read_and_environment_wins(self):
        self.env_file.write_text(
            "OSMOS_USERNAME=from-file\nOSMOS_REPO=file-repo\n", encoding="utf-8"
        )
        with patch.dict(os.environ, {"OSMOS_USERNAME": "from-env"}, clear=True):
            config = load_config(env_file=str(self.env_file))

        assert config.github.username == "from-env"
        assert config.github.repo == "file-repo"

    def test_overrides_win_over_environment(self):
        with patch.dict(os.environ, {"OSMOS_BOOKMARKS_SYNC_MODE": "bar"}, clear=True):
            config = load_config(
                env_file=str(self.env_file), OSMOS_BOOKMARKS_SYNC_MODE="folder"
            )
        assert config.bookmarks.sync_mode is SyncMode.FOLDER

    def test_invalid_values_raise_runtime_error(self):
        for key, value in (
            ("OSMOS_BOOKMARKS_SYNC_MODE", "sidebar"),
            ("OSMOS_SYNC_TO_BOOKMARKS_BAR", "maybe"),
            ("OSMOS_BOOKMARKS_SYNC_INTERVAL_MINUTES", "soon"),
            ("OSMOS_BROWSER", "netscape"),
            ("OSMOS_GITHUB_API_URL", "ftp://example"),
            ("LOG_LEVEL", "LOUD"),
        ):
            with self.subTest(key=key), patch.dict(os.environ, {key: value}, clear=True):
                with self.assertRaises(RuntimeError) as ctx:
                    load_config(env_file=str(self.env_file))
                assert "Invalid configuration" in str(ctx.exception)

    def test_non_positive_interval_turns_timer_off(self):
        env = {"OSMOS_SYNC_TO_BOOKMARKS_BAR": "true", "OSMOS_BOOKMARKS_SYNC_INTERVAL_MINUTES": "-5"}
        with patch.dict(os.environ, env, clear=True):
            config = load_config(env_file=str(self.env_file))
        assert config.bookmarks.sync_interval_minutes == -5
        assert not config.bookmarks.timer_enabled


class TestSectionModels(unittest.TestCase):
    def test_github_is_complete_needs_all_three(self):
        assert GitHubConfig(access_token="t", username="u", repo="r").is_complete
        assert not GitHubConfig(access_token="t", username="u").is_complete
        assert not GitHubConfig(username="u", repo="r").is_complete

    def test_token_with_whitespace_rejected(self):
        with self.assertRaises(ValueError):
            GitHubConfig(access_token="abc def")

    def test_filename_traversal_rejected(self):
        with self.assertRaises(ValueError):
            GitHubConfig(filename="../secrets.md")

    def test_timer_requires_sync_enabled(self):
        config = BookmarksSyncConfig(sync_to_bookmarks_bar=False, sync_interval_minutes=10)
        assert not config.timer_enabled


if __name__ == "__main__":
    unittest.main()
