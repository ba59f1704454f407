from __future__ import annotations
from typing import Callable, Protocol

from playlist.models import FlatPage
from .model import Viewport


class TimerProtocol(Protocol):
    """
    One repeating (or single-shot) timer.
    start() on a running timer must drop any pending timeout before re-arming.
    """
    def start(self, interval: float, callback: Callable[[], None]) -> None: ...
    def stop(self) -> None: ...
    @property
    def active(self) -> bool: ...


class PageRendererProtocol(Protocol):
    """
    Fire-and-forget page rendering.
    submit() returns immediately; done(token, image, error) is called later,
    possibly from another thread. Requests superseded by a newer token may be
    skipped without calling done.
    """
    def submit(self, page: FlatPage, viewport: Viewport, token: int,
               done: Callable[[int, object, object], None]) -> None: ...
