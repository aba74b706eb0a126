"""Pytest configuration and shared fixtures."""

import os

import pytest

from tests.fakes import FakeBookmarkHost, FakeRemoteStore


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    """Keep the developer's OSMOS_* variables and .env file out of every test."""
    for key in list(os.environ):
        if key.startswith("OSMOS_") or key in ("LOG_LEVEL", "LOG_FILE", "LOG_JSON"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def host():
    return FakeBookmarkHost()


@pytest.fixture
def store():
    return FakeRemoteStore()
