"""Human-readable status messages for sync results."""

from __future__ import annotations

from osmosync.domain.models import SyncMode

ALREADY_IN_SYNC = "Already in sync"


def _count_clauses(
    *,
    imported: int,
    created: int,
    updated: int,
    removed: int,
    mode: SyncMode | None,
) -> list[str]:
    destination = "bar" if mode is SyncMode.BAR else "folder"
    clauses: list[str] = []
    if imported:
        clauses.append(f"{imported} imported from browser")
    if created:
        clauses.append(f"{created} added to {destination}")
    if updated:
        clauses.append(f"{updated} updated")
    if removed:
        clauses.append(f"{removed} removed")
    return clauses


def compose_message(
    *,
    imported: int = 0,
    created: int = 0,
    updated: int = 0,
    removed: int = 0,
    mode: SyncMode | None = None,
) -> str:
    """Summarize a completed sync, leaving out zero counts."""
    clauses = _count_clauses(
        imported=imported, created=created, updated=updated, removed=removed, mode=mode
    )
    if not clauses:
        return ALREADY_IN_SYNC
    return "Synced: " + ", ".join(clauses)


def compose_error_message(
    error: BaseException,
    *,
    imported: int = 0,
    created: int = 0,
    updated: int = 0,
    removed: int = 0,
    mode: SyncMode | None = None,
) -> str:
    """The underlying failure text, plus whatever was applied before it."""
    text = str(error).strip() or type(error).__name__
    clauses = _count_clauses(
        imported=imported, created=created, updated=updated, removed=removed, mode=mode
    )
    if clauses:
        text += f" (completed before failure: {', '.join(clauses)})"
    return text
