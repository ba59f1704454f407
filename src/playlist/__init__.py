"""
Public API for the playlist package: where the pages come from.
Usage:
    from playlist import HttpPlaylistProvider, DocumentLoader, flatten
"""
from .models import (
    PlaylistEntry, Playlist, DocumentHandle, FlatPage, LoadResult,
    DEFAULT_PAGE_DURATION, coerce_page_duration, sort_entries, normalize_order,
)
from .protocol import PlaylistProvider, Fetcher, DecoderProtocol
from .fetch import BlobFetcher, make_session
from .loader import DocumentLoader
from .flatten import flatten
from .provider import HttpPlaylistProvider, FilePlaylistProvider

__all__ = [
    # models
    "PlaylistEntry", "Playlist", "DocumentHandle", "FlatPage", "LoadResult",
    "DEFAULT_PAGE_DURATION", "coerce_page_duration", "sort_entries", "normalize_order",
    # protocols
    "PlaylistProvider", "Fetcher", "DecoderProtocol",
    # implementations
    "BlobFetcher", "make_session", "DocumentLoader", "flatten",
    "HttpPlaylistProvider", "FilePlaylistProvider",
]
