from __future__ import annotations
import logging
from typing import Callable, Optional, Tuple

from errors import SignageError
from pdfio import PageRenderer
from playlist import (
    DocumentLoader, Fetcher, DecoderProtocol, FlatPage, LoadResult,
    Playlist, PlaylistProvider, flatten,
)
from state import (
    Command, Phase, PlaybackState, PlaybackStore, SessionEnd, Start, TimerProtocol, Viewport,
)

log = logging.getLogger(__name__)


class PlayerSession:
    """
    One viewing of one screen: playlist → documents → flat pages → playback.

    prepare() does the blocking part (playlist lookup, fetch, decode) and may
    run off the UI thread; begin() wires the result into the store and starts
    playback on the owning thread. open() does both. close() is safe to call
    any number of times and from any exit path.
    """
    def __init__(
        self,
        screen_id: str,
        provider: PlaylistProvider,
        fetcher: Fetcher,
        decoder: DecoderProtocol,
        timer: TimerProtocol,
        idle_timer: Optional[TimerProtocol] = None,
        post: Optional[Callable[[Command], None]] = None,
        loader_workers: int = 4,
        loader_timeout: float = 30.0,
        cache_pages: int = 12,
        render_workers: int = 1,
        tick_seconds: float = 1.0,
        idle_seconds: float = 3.0,
    ):
        self.screen_id = screen_id
        self.provider = provider
        self.fetcher = fetcher
        self.decoder = decoder
        self.loader = DocumentLoader(fetcher, decoder, workers=loader_workers, timeout=loader_timeout)
        self.store = PlaybackStore(
            timer=timer,
            idle_timer=idle_timer,
            tick_seconds=tick_seconds,
            idle_seconds=idle_seconds,
            post=post,
        )
        self.playlist: Optional[Playlist] = None
        self.result: Optional[LoadResult] = None
        self.pages: Tuple[FlatPage, ...] = ()
        self._cache_pages = cache_pages
        self._render_workers = render_workers
        self._renderer: Optional[PageRenderer] = None
        self._decoder_open = False
        self._closed = False

    # ------------- lifecycle -------------
    def prepare(self) -> LoadResult:
        """Blocking: look up the playlist and load every document. ScreenNotFound propagates."""
        if self._closed:
            raise SignageError("prepare() called on a closed session")
        if not self._decoder_open:
            self.decoder.open()
            self._decoder_open = True
        self.playlist = self.provider.get_playlist(self.screen_id)
        log.info("Screen %s (%s): %d entries, %ds per page",
                 self.screen_id, self.playlist.screen_name,
                 len(self.playlist.entries), self.playlist.page_duration)
        self.result = self.loader.load(self.playlist.entries)
        self.pages = flatten(self.result.documents)
        return self.result

    def begin(self, viewport: Optional[Viewport] = None) -> PlaybackState:
        if self.playlist is None or self.result is None:
            raise SignageError("begin() called before prepare()")
        if self._closed:
            # a load that raced close() must not bring the clock back
            log.info("Session for screen %s is closed; not starting playback", self.screen_id)
            self.loader.release_all()
            return self.store.state
        self._renderer = PageRenderer(
            self.decoder, self.result.documents,
            cache_pages=self._cache_pages, workers=self._render_workers,
        )
        self.store.renderer = self._renderer
        self.store.on_end = self._release
        self.store.load(self.pages, self.playlist.page_duration, viewport)
        return self.store.dispatch(Start())

    def open(self, viewport: Optional[Viewport] = None) -> PlaybackState:
        try:
            self.prepare()
        except Exception:
            self.close()
            raise
        return self.begin(viewport)

    def reload(self, viewport: Optional[Viewport] = None) -> PlaybackState:
        """Drop everything loaded so far and build the page sequence again."""
        log.info("Reloading screen %s", self.screen_id)
        self.unload()
        self.prepare()
        return self.begin(viewport)

    def unload(self) -> None:
        """Stop the clock and release the current documents; the session can be prepared again."""
        if self.store.state.phase != Phase.ENDED:
            # back to LOADING with no pages so late ticks and clicks are no-ops
            self.store.load((), self.store.state.page_duration)
        self.store.timer.stop()
        if self.store.idle_timer is not None:
            self.store.idle_timer.stop()
        self._release()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            if self.store.state.phase != Phase.ENDED:
                self.store.dispatch(SessionEnd())
        finally:
            self.unload()
            if self._decoder_open:
                self.decoder.close()
                self._decoder_open = False
            close_fetcher = getattr(self.fetcher, "close", None)
            if close_fetcher is not None:
                close_fetcher()

    def __enter__(self) -> "PlayerSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------- internals -------------
    def _release(self) -> None:
        if self._renderer is not None:
            self._renderer.close()
            self._renderer = None
        self.loader.release_all()
