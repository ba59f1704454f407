from __future__ import annotations
from typing import Any, Protocol, Tuple

from .models import Playlist


class PlaylistProvider(Protocol):
    """
    Source of the ordered playlist and page duration for one screen.
    Raises errors.ScreenNotFound when the screen does not exist.
    """
    def get_playlist(self, screen_id: str) -> Playlist: ...


class Fetcher(Protocol):
    """fetch(location) -> raw bytes; raises errors.FetchError (network | not-found)."""
    def fetch(self, location: str, timeout: float) -> bytes: ...


class DecoderProtocol(Protocol):
    """
    The external rendering engine, injected explicitly (no process-wide handle).

    Implementations must provide:
      - open() / close(): engine init / teardown
      - decode(data) -> opaque doc; raises on malformed input
      - page_count(doc) -> int
      - page_size(doc, page_number) -> (width, height) in natural units (1-based page)
      - render_page(doc, page_number, scale) -> (samples, width, height, stride)
      - release(doc): free decoder memory for one document
    """
    def open(self) -> None: ...
    def close(self) -> None: ...
    def decode(self, data: bytes) -> Any: ...
    def page_count(self, doc: Any) -> int: ...
    def page_size(self, doc: Any, page_number: int) -> Tuple[float, float]: ...
    def render_page(self, doc: Any, page_number: int, scale: float) -> Tuple[bytes, int, int, int]: ...
    def release(self, doc: Any) -> None: ...
