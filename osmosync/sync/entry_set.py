"""URL-keyed, order-preserving collection of bookmark entries."""

from __future__ import annotations

from typing import TYPE_CHECKING, Generic, TypeVar

from osmosync.domain.models import Entry

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

E = TypeVar("E", bound=Entry)


class EntrySet(Generic[E]):
    """An ordered sequence of entries plus an ``href`` -> entry index.

    When the same href occurs more than once, the later occurrence wins in
    the index. The sequence itself is kept as given so that callers which
    render content can follow its order.
    """

    __slots__ = ("_entries", "_by_href")

    def __init__(self, entries: Iterable[E] = ()) -> None:
        self._entries: tuple[E, ...] = tuple(entries)
        self._by_href: dict[str, E] = {}
        for entry in self._entries:
            self._by_href[entry.href] = entry

    @classmethod
    def from_sequence(cls, entries: Iterable[E]) -> EntrySet[E]:
        return cls(entries)

    def urls(self) -> set[str]:
        return set(self._by_href)

    def get(self, href: str) -> E | None:
        return self._by_href.get(href)

    def difference(self, other: EntrySet[Entry]) -> list[E]:
        """Entries of this set whose href is absent from ``other``, in this set's order."""
        missing = other.urls()
        return [entry for entry in self._entries if entry.href not in missing]

    def unique(self) -> list[E]:
        """One entry per href: positioned at first occurrence, carrying the last one's data."""
        seen: set[str] = set()
        result: list[E] = []
        for entry in self._entries:
            if entry.href in seen:
                continue
            seen.add(entry.href)
            result.append(self._by_href[entry.href])
        return result

    def __contains__(self, href: object) -> bool:
        return href in self._by_href

    def __iter__(self) -> Iterator[E]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"EntrySet(entries={len(self._entries)}, urls={len(self._by_href)})"
