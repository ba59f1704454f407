from __future__ import annotations
from dataclasses import replace

from .model import PlaybackState, Phase, Viewport, Frame
from .commands import (
    Command, Start, Tick, ManualNext, ManualPrev, GoTo, ViewportResized,
    RenderCompleted, PointerActivity, InputIdle, SessionEnd,
)


def reduce(state: PlaybackState, cmd: Command) -> PlaybackState:
    """
    Pure state transformer. Never mutates the input state (it is frozen anyway).
    The store turns differences between old and new state into effects:
      render_token bump  -> render request
      timer_epoch bump   -> restart the tick timer
      EMPTY / ENDED      -> stop the timer
    """
    s = state

    if s.phase == Phase.ENDED:
        return s

    # --- Teardown (from any state) ---
    if isinstance(cmd, SessionEnd):
        return replace(s, phase=Phase.ENDED, pending_token=None, rerender_pending=False,
                       input_active=False)

    # --- Session start ---
    if isinstance(cmd, Start):
        if s.phase != Phase.LOADING:
            return s
        if not s.pages:
            return replace(s, phase=Phase.EMPTY, index=0, elapsed=0)
        s = replace(s, index=0, elapsed=0, timer_epoch=s.timer_epoch + 1)
        return _request_render(s)

    if s.phase in (Phase.LOADING, Phase.EMPTY):
        # Only viewport/input bookkeeping is meaningful without pages.
        if isinstance(cmd, ViewportResized):
            return replace(s, viewport=_viewport(cmd))
        return s

    # --- Timer ---
    if isinstance(cmd, Tick):
        elapsed = s.elapsed + 1
        if elapsed < s.page_duration:
            return replace(s, elapsed=elapsed)
        s = replace(s, index=_wrap(s.index + 1, len(s.pages)), elapsed=0)
        return _request_render(s)

    # --- Manual navigation: same timer, restarted from zero ---
    if isinstance(cmd, (ManualNext, ManualPrev, GoTo)):
        if isinstance(cmd, ManualNext):
            target = s.index + 1
        elif isinstance(cmd, ManualPrev):
            target = s.index - 1
        else:
            target = cmd.index
        s = replace(s, index=_wrap(target, len(s.pages)), elapsed=0,
                    timer_epoch=s.timer_epoch + 1)
        return _request_render(s)

    # --- Viewport (index and timer untouched) ---
    if isinstance(cmd, ViewportResized):
        vp = _viewport(cmd)
        if vp == s.viewport:
            return s
        s = replace(s, viewport=vp)
        if s.phase == Phase.TRANSITIONING:
            return replace(s, rerender_pending=True)
        return _request_render(s)

    # --- Render results ---
    if isinstance(cmd, RenderCompleted):
        if s.pending_token is None or cmd.token != s.pending_token:
            return s  # stale: a newer request has been issued since
        frame = Frame(index=s.index, token=cmd.token, image=cmd.image) if cmd.ok else s.frame
        s = replace(s, frame=frame, pending_token=None, phase=Phase.DISPLAYING)
        if s.rerender_pending:
            s = _request_render(replace(s, rerender_pending=False))
        return s

    # --- Input overlay ---
    if isinstance(cmd, PointerActivity):
        return s if s.input_active else replace(s, input_active=True)

    if isinstance(cmd, InputIdle):
        return replace(s, input_active=False) if s.input_active else s

    # Unhandled command → no-op (future-proof)
    return s


# ----- helpers -----

def _wrap(index: int, length: int) -> int:
    return index % length if length > 0 else 0

def _viewport(cmd: ViewportResized) -> Viewport:
    return Viewport(width=max(1, int(cmd.width)), height=max(1, int(cmd.height)),
                    dpr=float(cmd.dpr) if cmd.dpr and cmd.dpr > 0 else 1.0)

def _request_render(s: PlaybackState) -> PlaybackState:
    token = s.render_token + 1
    return replace(s, render_token=token, pending_token=token,
                   rerender_pending=False, phase=Phase.TRANSITIONING)
