"""
Input producers for the player: swipes, taps and keys all become the same
state commands, so navigation logic lives only in the reducer.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from state import Command, ManualNext, ManualPrev

SWIPE_THRESHOLD_PX = 50
TAP_SLOP_PX = 10

KEY_NEXT = ("ArrowRight", "Right", "Space", " ")
KEY_PREV = ("ArrowLeft", "Left")


def command_for_key(key: str) -> Optional[Command]:
    if key in KEY_NEXT:
        return ManualNext()
    if key in KEY_PREV:
        return ManualPrev()
    return None


def command_for_swipe(dx: float, dy: float, threshold: float = SWIPE_THRESHOLD_PX) -> Optional[Command]:
    """Horizontal-dominant swipes past the threshold: left → next, right → prev."""
    if abs(dx) <= abs(dy) or abs(dx) <= threshold:
        return None
    return ManualNext() if dx < 0 else ManualPrev()


def command_for_tap(x: float, width: float) -> Optional[Command]:
    """Left third goes back, right third goes forward, the middle only wakes the overlay."""
    if width <= 0:
        return None
    if x < width / 3.0:
        return ManualPrev()
    if x > width * 2.0 / 3.0:
        return ManualNext()
    return None


@dataclass
class SwipeTracker:
    """Remembers where a press started and classifies the release."""
    threshold: float = SWIPE_THRESHOLD_PX
    tap_slop: float = TAP_SLOP_PX
    _start: Optional[tuple[float, float]] = None

    def press(self, x: float, y: float) -> None:
        self._start = (x, y)

    def release(self, x: float, y: float, width: float) -> Optional[Command]:
        if self._start is None:
            return None
        sx, sy = self._start
        self._start = None
        dx, dy = x - sx, y - sy
        if abs(dx) <= self.tap_slop and abs(dy) <= self.tap_slop:
            return command_for_tap(x, width)
        return command_for_swipe(dx, dy, self.threshold)

    def cancel(self) -> None:
        self._start = None
