"""GitHub remote store for the Markdown bookmark document."""

from osmosync.adapters.github.client import GitHubContentClient

__all__ = ["GitHubContentClient"]
