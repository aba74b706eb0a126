"""Error taxonomy for remote store and bookmark host failures.

Every failure raised by a collaborator derives from ``OsmosyncError`` so the
session controller can turn it into an error result in one place.
"""

from __future__ import annotations


class OsmosyncError(Exception):
    """Base exception for all sync errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        """Initialize sync error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RemoteStoreError(OsmosyncError):
    """Raised when the remote Markdown document cannot be read or written."""


class RemoteNotFoundError(RemoteStoreError):
    """Raised when the repository or the document does not exist."""


class RemoteAuthError(RemoteStoreError):
    """Raised when the access token is rejected."""


class RemoteNetworkError(RemoteStoreError):
    """Raised on transport failures and server-side errors."""


class RemoteConflictError(RemoteStoreError):
    """Raised when the document keeps changing underneath a write."""


class BookmarkHostError(OsmosyncError):
    """Raised when the browser bookmark storage rejects an operation."""


class BookmarkNotFoundError(BookmarkHostError):
    """Raised when a bookmark or folder id does not exist."""
