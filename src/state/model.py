from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Optional, Tuple

from playlist.models import FlatPage


class Phase(Enum):
    LOADING = auto()        # before Start
    EMPTY = auto()          # terminal: nothing to show, no timer
    DISPLAYING = auto()
    TRANSITIONING = auto()  # a render for the current index is in flight
    ENDED = auto()          # terminal: session torn down


@dataclass(frozen=True)
class Viewport:
    width: int = 1920
    height: int = 1080
    dpr: float = 1.0


@dataclass(frozen=True)
class Frame:
    """What is actually on screen: the raster plus the index it was rendered for."""
    index: int
    token: int
    image: Any = None


@dataclass(frozen=True)
class PlaybackState:
    pages: Tuple[FlatPage, ...] = ()
    index: int = 0
    elapsed: int = 0
    page_duration: int = 60
    phase: Phase = Phase.LOADING
    viewport: Viewport = field(default_factory=Viewport)

    # render bookkeeping: the newest token wins
    render_token: int = 0
    pending_token: Optional[int] = None
    rerender_pending: bool = False
    frame: Optional[Frame] = None

    # bumps whenever the tick timer must (re)start from zero
    timer_epoch: int = 0

    input_active: bool = False

    @property
    def is_transitioning(self) -> bool:
        return self.phase == Phase.TRANSITIONING

    @property
    def is_playing(self) -> bool:
        return self.phase in (Phase.DISPLAYING, Phase.TRANSITIONING)

    @property
    def current_page(self) -> Optional[FlatPage]:
        if not self.pages or self.phase in (Phase.EMPTY, Phase.ENDED):
            return None
        return self.pages[self.index]

    @property
    def progress(self) -> float:
        """Share of the page duration already spent, 0..1."""
        if self.page_duration <= 0:
            return 0.0
        return min(1.0, self.elapsed / float(self.page_duration))

    def caption(self) -> str:
        page = self.current_page
        if page is None:
            return ""
        return (f"{page.display_name} — Page {page.page_number}/{page.page_count}"
                f"  •  {self.index + 1}/{len(self.pages)} total")
