"""Browser bookmark hosts."""

from osmosync.adapters.bookmarks.chromium import ChromiumBookmarkHost, default_bookmarks_path

__all__ = ["ChromiumBookmarkHost", "default_bookmarks_path"]
