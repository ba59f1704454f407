"""
Public API for the state package.

Import from here everywhere else, so you can refactor internals freely:
    from state import (
        PlaybackState, Phase, Viewport, Frame,
        Start, Tick, ManualNext, ManualPrev, GoTo, ViewportResized,
        RenderCompleted, PointerActivity, InputIdle, SessionEnd,
        TimerProtocol, PageRendererProtocol, reduce, PlaybackStore
    )
"""
from .model import PlaybackState, Phase, Viewport, Frame
from .commands import (
    Command,
    Start, Tick, ManualNext, ManualPrev, GoTo, ViewportResized,
    RenderCompleted, PointerActivity, InputIdle, SessionEnd,
)
from .protocol import TimerProtocol, PageRendererProtocol
from .reducer import reduce
from .store import PlaybackStore

__all__ = [
    # model
    "PlaybackState", "Phase", "Viewport", "Frame",
    # commands
    "Command",
    "Start", "Tick", "ManualNext", "ManualPrev", "GoTo", "ViewportResized",
    "RenderCompleted", "PointerActivity", "InputIdle", "SessionEnd",
    # protocol & reducer & store
    "TimerProtocol", "PageRendererProtocol", "reduce", "PlaybackStore",
]
