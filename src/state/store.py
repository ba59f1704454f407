from __future__ import annotations
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Optional, Sequence

from playlist.models import FlatPage
from .model import PlaybackState, Phase, Viewport
from .commands import (
    Command, Tick, RenderCompleted, PointerActivity, InputIdle,
)
from .reducer import reduce
from .protocol import TimerProtocol, PageRendererProtocol

log = logging.getLogger(__name__)

Listener = Callable[[PlaybackState, PlaybackState], None]


@dataclass
class PlaybackStore:
    """
    Single event queue in front of the pure reducer, plus the effects it implies.

    Usage:
        store = PlaybackStore(renderer=r, timer=t, idle_timer=i)
        store.load(pages, page_duration=30)
        store.dispatch(Start())
        store.dispatch(ManualNext())

    Commands dispatched while another one is being applied (from a listener or
    a synchronous render callback) are queued and applied in order afterwards.
    Render results arriving from worker threads must come back through `post`,
    which the host points at something that hops onto the owning thread.
    """
    renderer: PageRendererProtocol = field(default=None)  # inject at construction
    timer: TimerProtocol = field(default=None)
    idle_timer: Optional[TimerProtocol] = None
    tick_seconds: float = 1.0
    idle_seconds: float = 3.0
    state: PlaybackState = field(default_factory=PlaybackState)
    post: Optional[Callable[[Command], None]] = None
    on_end: Optional[Callable[[], None]] = None
    _queue: Deque[Command] = field(default_factory=deque)
    _draining: bool = False
    _listeners: List[Listener] = field(default_factory=list)

    def load(self, pages: Sequence[FlatPage], page_duration: int,
             viewport: Optional[Viewport] = None) -> PlaybackState:
        """Reset to LOADING with a fresh page sequence (start of a session or a reload)."""
        if self.state.phase == Phase.ENDED:
            log.debug("Ignoring load: session has ended")
            return self.state
        if self.state.is_playing:
            self.timer.stop()
        self.state = PlaybackState(
            pages=tuple(pages),
            page_duration=max(1, int(page_duration)),
            viewport=viewport or self.state.viewport,
            render_token=self.state.render_token,  # keep tokens monotonic across reloads
        )
        return self.state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dispatch(self, cmd: Command) -> PlaybackState:
        self._queue.append(cmd)
        if self._draining:
            return self.state
        self._draining = True
        try:
            while self._queue:
                self._apply(self._queue.popleft())
        finally:
            self._draining = False
        return self.state

    # ------------- internals -------------
    def _apply(self, cmd: Command) -> None:
        old = self.state
        new = reduce(old, cmd)
        if isinstance(cmd, RenderCompleted):
            self._log_render(old, cmd)
        if new is old:
            return
        self.state = new
        self._effects(old, new, cmd)
        for listener in list(self._listeners):
            listener(old, new)

    def _effects(self, old: PlaybackState, new: PlaybackState, cmd: Command) -> None:
        if new.phase in (Phase.EMPTY, Phase.ENDED):
            self.timer.stop()
            if self.idle_timer is not None:
                self.idle_timer.stop()
            if new.phase == Phase.EMPTY:
                log.info("No pages loaded; player is empty")
            elif old.phase != Phase.ENDED:
                log.info("Playback session ended")
                if self.on_end is not None:
                    self.on_end()
            return

        if new.timer_epoch != old.timer_epoch:
            # start() re-arms from zero, dropping any pending tick of the old run
            self.timer.start(self.tick_seconds, self._on_tick)

        if new.render_token != old.render_token:
            page = new.pages[new.index]
            self.renderer.submit(page, new.viewport, new.render_token, self._on_rendered)

        if isinstance(cmd, PointerActivity) and self.idle_timer is not None:
            self.idle_timer.start(self.idle_seconds, self._on_idle)

    def _on_tick(self) -> None:
        self._send(Tick())

    def _on_idle(self) -> None:
        if self.idle_timer is not None:
            self.idle_timer.stop()
        self._send(InputIdle())

    def _on_rendered(self, token: int, image: object, error: object) -> None:
        self._send(RenderCompleted(token=token, image=image,
                                   error=None if error is None else str(error)))

    def _send(self, cmd: Command) -> None:
        (self.post or self.dispatch)(cmd)

    def _log_render(self, old: PlaybackState, cmd: RenderCompleted) -> None:
        if cmd.token != old.pending_token:
            log.debug("Dropping stale render result (token %s, waiting for %s)",
                      cmd.token, old.pending_token)
        elif not cmd.ok:
            page = old.pages[old.index] if old.pages else None
            log.error("Failed to render page %s of %s: %s",
                      getattr(page, "page_number", "?"), getattr(page, "display_name", "?"), cmd.error)
