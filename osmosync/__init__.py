"""Two-way sync between browser bookmarks and a Markdown bookmark list on GitHub."""

__version__ = "0.1.0"
