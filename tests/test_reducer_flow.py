from state import (
    PlaybackState, Phase, Viewport,
    Start, Tick, ManualNext, ManualPrev, GoTo, ViewportResized,
    RenderCompleted, PointerActivity, InputIdle, SessionEnd,
)
from state import reduce
from conftest import pages_for


def _playing(counts=(3, 2), duration=60):
    s = PlaybackState(pages=pages_for(*counts), page_duration=duration)
    s = reduce(s, Start())
    return reduce(s, RenderCompleted(token=s.pending_token, image="first"))


def test_start_without_pages_is_empty():
    s = reduce(PlaybackState(), Start())
    assert s.phase == Phase.EMPTY
    assert s.current_page is None
    assert s.render_token == 0 and s.timer_epoch == 0


def test_empty_ignores_navigation_and_ticks():
    s = reduce(PlaybackState(), Start())
    for cmd in (ManualNext(), ManualPrev(), Tick(), GoTo(3)):
        assert reduce(s, cmd) is s


def test_start_requests_first_page_and_starts_timer():
    s = reduce(PlaybackState(pages=pages_for(3, 2)), Start())
    assert s.phase == Phase.TRANSITIONING
    assert s.index == 0 and s.elapsed == 0
    assert s.pending_token == s.render_token == 1
    assert s.timer_epoch == 1


def test_two_documents_wrap_forward_and_back():
    s = _playing((3, 2))
    assert len(s.pages) == 5
    s = reduce(s, GoTo(4))
    assert s.index == 4
    s = reduce(s, ManualNext())
    assert s.index == 0
    s = reduce(s, ManualPrev())
    assert s.index == 4


def test_tick_advances_exactly_once_per_window():
    s = _playing(duration=3)
    s = reduce(s, Tick())
    s = reduce(s, Tick())
    assert (s.index, s.elapsed) == (0, 2)
    s = reduce(s, Tick())
    assert (s.index, s.elapsed) == (1, 0)
    assert s.phase == Phase.TRANSITIONING
    s = reduce(s, Tick())
    assert (s.index, s.elapsed) == (1, 1)


def test_tick_does_not_restart_timer():
    s = _playing(duration=1)
    epoch = s.timer_epoch
    s = reduce(s, Tick())
    assert s.index == 1
    assert s.timer_epoch == epoch


def test_manual_next_resets_elapsed_and_moves_one_page():
    s = _playing(duration=60)
    for _ in range(5):
        s = reduce(s, Tick())
    assert s.elapsed == 5
    epoch = s.timer_epoch
    s = reduce(s, ManualNext())
    assert s.index == 1
    assert s.elapsed == 0
    assert s.timer_epoch == epoch + 1


def test_progress_tracks_elapsed():
    s = _playing(duration=4)
    s = reduce(s, Tick())
    assert s.progress == 0.25


def test_stale_render_result_is_ignored():
    s = _playing()
    s = reduce(s, ManualNext())
    old_token = s.pending_token
    s = reduce(s, ManualNext())
    assert reduce(s, RenderCompleted(token=old_token, image="late")) is s
    s = reduce(s, RenderCompleted(token=s.pending_token, image="page3"))
    assert s.frame.image == "page3"
    assert s.frame.index == 2
    assert s.phase == Phase.DISPLAYING


def test_render_failure_keeps_previous_frame_index_and_timer():
    s = _playing()
    s = reduce(s, Tick())
    s = reduce(s, ManualNext())
    s = reduce(s, Tick())
    before = s
    s = reduce(s, RenderCompleted(token=s.pending_token, error="boom"))
    assert s.frame == before.frame
    assert s.frame.image == "first"
    assert s.index == before.index
    assert s.elapsed == before.elapsed and s.timer_epoch == before.timer_epoch
    assert s.phase == Phase.DISPLAYING


def test_resize_rerenders_same_index_without_touching_timer():
    s = _playing()
    s = reduce(s, Tick())
    token = s.render_token
    s = reduce(s, ViewportResized(800, 600, 2.0))
    assert s.viewport == Viewport(800, 600, 2.0)
    assert s.render_token == token + 1
    assert s.index == 0 and s.elapsed == 1
    assert s.phase == Phase.TRANSITIONING


def test_resize_during_transition_waits_for_current_render():
    s = _playing()
    s = reduce(s, ManualNext())
    token = s.pending_token
    s = reduce(s, ViewportResized(640, 480))
    assert s.render_token == token and s.rerender_pending
    s = reduce(s, RenderCompleted(token=token, image="small"))
    assert s.frame.image == "small"
    assert s.render_token == token + 1
    assert s.pending_token == token + 1
    assert s.phase == Phase.TRANSITIONING and not s.rerender_pending


def test_same_viewport_is_a_noop():
    s = _playing()
    s = reduce(s, ViewportResized(500, 500))
    s = reduce(s, RenderCompleted(token=s.pending_token, image="x"))
    assert reduce(s, ViewportResized(500, 500)) is s


def test_input_overlay_toggles():
    s = _playing()
    s = reduce(s, PointerActivity())
    assert s.input_active
    s = reduce(s, InputIdle())
    assert not s.input_active


def test_session_end_is_terminal():
    s = _playing()
    s = reduce(s, SessionEnd())
    assert s.phase == Phase.ENDED
    assert s.current_page is None
    for cmd in (Tick(), ManualNext(), Start(), ViewportResized(10, 10)):
        assert reduce(s, cmd) is s


def test_caption_describes_current_page():
    s = _playing((3, 2))
    s = reduce(s, GoTo(3))
    assert s.caption() == "doc1 — Page 1/2  •  4/5 total"


def test_reducer_never_mutates_input():
    s = _playing()
    snapshot = (s.index, s.elapsed, s.render_token, s.phase)
    reduce(s, ManualNext())
    reduce(s, Tick())
    assert (s.index, s.elapsed, s.render_token, s.phase) == snapshot
