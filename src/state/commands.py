from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional


class Command:
    """Marker base class for all commands (player inputs)."""
    pass


@dataclass
class Start(Command):
    """Pages are known; show the first one (or go Empty)."""


@dataclass
class Tick(Command):
    """One timer unit elapsed."""


@dataclass
class ManualNext(Command):
    pass


@dataclass
class ManualPrev(Command):
    pass


@dataclass
class GoTo(Command):
    index: int  # 0-based, wrapped into range


@dataclass
class ViewportResized(Command):
    width: int
    height: int
    dpr: float = 1.0


@dataclass
class RenderCompleted(Command):
    """Result of a render request. image is None on failure."""
    token: int
    image: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.image is not None


@dataclass
class PointerActivity(Command):
    """Touch/mouse seen; shows the navigation overlay until InputIdle."""


@dataclass
class InputIdle(Command):
    pass


@dataclass
class SessionEnd(Command):
    """Tear everything down. Terminal."""
