from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, List, Tuple

DEFAULT_PAGE_DURATION = 60


@dataclass(frozen=True)
class PlaylistEntry:
    document_id: str
    display_name: str
    source_location: str
    sort_order: int = 0


@dataclass(frozen=True)
class Playlist:
    screen_id: str
    screen_name: str
    entries: Tuple[PlaylistEntry, ...] = ()
    page_duration: int = DEFAULT_PAGE_DURATION


@dataclass(eq=False)
class DocumentHandle:
    """A decoded document plus what the flattener needs to know about it."""
    entry: PlaylistEntry
    page_count: int
    doc: Any = None           # decoder-owned object; opaque to everyone else
    released: bool = False

    @property
    def display_name(self) -> str:
        return self.entry.display_name


@dataclass(frozen=True)
class FlatPage:
    document_index: int       # index into the loaded (not the requested) document list
    page_number: int          # 1-based within its document
    page_count: int           # total pages of the containing document
    display_name: str


@dataclass
class LoadResult:
    documents: List[DocumentHandle] = field(default_factory=list)
    failures: List[Tuple[PlaylistEntry, Exception]] = field(default_factory=list)

    @property
    def page_total(self) -> int:
        return sum(d.page_count for d in self.documents)


def coerce_page_duration(value: Any, default: int = DEFAULT_PAGE_DURATION) -> int:
    """Positive integer seconds, else the default (mirrors `parseInt(x) || 60`)."""
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        return default
    return seconds if seconds > 0 else default


def sort_entries(entries: List[PlaylistEntry]) -> List[PlaylistEntry]:
    """Order by sort_order; ties keep their incoming position."""
    return [e for _, e in sorted(enumerate(entries), key=lambda p: (p[1].sort_order, p[0]))]


def normalize_order(entries: List[PlaylistEntry]) -> List[PlaylistEntry]:
    """Sorted copy whose sort orders are rewritten to 0..n-1."""
    out: List[PlaylistEntry] = []
    for i, e in enumerate(sort_entries(entries)):
        out.append(e if e.sort_order == i else PlaylistEntry(
            document_id=e.document_id,
            display_name=e.display_name,
            source_location=e.source_location,
            sort_order=i,
        ))
    return out
