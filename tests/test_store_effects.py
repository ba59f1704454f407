from state import (
    Phase, Start, Tick, ManualNext, ManualPrev, ViewportResized,
    PointerActivity, SessionEnd,
)
from conftest import pages_for


def _start(store, counts=(3, 2), duration=60):
    store.load(pages_for(*counts), page_duration=duration)
    return store.dispatch(Start())


def test_empty_sequence_creates_no_timer(store, timer, renderer):
    store.load((), page_duration=60)
    s = store.dispatch(Start())
    assert s.phase == Phase.EMPTY
    assert timer.starts == 0 and not timer.active
    assert renderer.requests == []
    store.dispatch(ManualNext())
    store.dispatch(ManualPrev())
    assert store.state.index == 0
    assert renderer.requests == []


def test_start_arms_timer_and_requests_first_page(store, timer, renderer):
    _start(store)
    assert timer.active and timer.interval == 1.0
    page, viewport, token, _ = renderer.last
    assert (page.document_index, page.page_number) == (0, 1)
    assert token == store.state.pending_token


def test_timer_ticks_drive_auto_advance(store, timer, renderer):
    _start(store, duration=2)
    renderer.complete()
    timer.fire(2)
    assert store.state.index == 1
    assert renderer.last[0].page_number == 2
    assert timer.starts == 1  # auto-advance keeps the same timer run


def test_manual_navigation_restarts_the_shared_timer(store, timer, renderer):
    _start(store, duration=60)
    renderer.complete()
    timer.fire(5)
    assert store.state.elapsed == 5
    store.dispatch(ManualNext())
    assert store.state.elapsed == 0
    assert store.state.index == 1
    assert timer.starts == 2
    timer.fire(59)
    assert store.state.index == 1
    timer.fire()
    assert store.state.index == 2


def test_last_request_wins(store, renderer):
    _start(store)
    renderer.complete()
    store.dispatch(ManualNext())
    store.dispatch(ManualNext())
    renderer.complete(i=-1, image="page3")
    renderer.complete(i=-2, image="page2-late")
    assert store.state.frame.image == "page3"
    assert store.state.phase == Phase.DISPLAYING


def test_render_failure_is_absorbed(store, renderer, timer, caplog):
    _start(store)
    renderer.complete(image="page1")
    store.dispatch(ManualNext())
    with caplog.at_level("ERROR"):
        renderer.complete(error="decoder exploded")
    assert store.state.frame.image == "page1"
    assert store.state.index == 1
    assert "decoder exploded" in caplog.text
    timer.fire()
    assert store.state.elapsed == 1


def test_resize_rerenders_at_new_size(store, renderer, timer):
    _start(store)
    renderer.complete()
    timer.fire(3)
    store.dispatch(ViewportResized(1024, 768, 2.0))
    page, viewport, token, _ = renderer.last
    assert page.page_number == 1
    assert (viewport.width, viewport.height, viewport.dpr) == (1024, 768, 2.0)
    assert store.state.elapsed == 3
    assert timer.starts == 1


def test_synchronous_render_callbacks_are_queued(timer, idle_timer):
    from state import PlaybackStore

    class InlineRenderer:
        def __init__(self):
            self.tokens = []

        def submit(self, page, viewport, token, done):
            self.tokens.append(token)
            done(token, f"p{page.page_number}", None)

    r = InlineRenderer()
    store = PlaybackStore(renderer=r, timer=timer, idle_timer=idle_timer)
    _start(store)
    assert store.state.phase == Phase.DISPLAYING
    assert store.state.frame.image == "p1"
    store.dispatch(ManualNext())
    assert store.state.frame.image == "p2"
    assert r.tokens == [1, 2]


def test_listeners_see_old_and_new(store, renderer):
    seen = []
    store.subscribe(lambda old, new: seen.append((old.phase, new.phase)))
    _start(store)
    renderer.complete()
    assert seen == [(Phase.LOADING, Phase.TRANSITIONING), (Phase.TRANSITIONING, Phase.DISPLAYING)]


def test_pointer_activity_arms_idle_timer(store, idle_timer, renderer):
    _start(store)
    store.dispatch(PointerActivity())
    assert store.state.input_active
    assert idle_timer.active and idle_timer.interval == 3.0
    idle_timer.fire()
    assert not store.state.input_active
    assert not idle_timer.active


def test_session_end_stops_timer_and_calls_back(store, timer, renderer):
    ended = []
    store.on_end = lambda: ended.append(True)
    _start(store)
    store.dispatch(SessionEnd())
    assert store.state.phase == Phase.ENDED
    assert not timer.active
    assert ended == [True]
    store.dispatch(SessionEnd())
    assert ended == [True]
    store.dispatch(Tick())
    assert store.state.phase == Phase.ENDED


def test_ended_store_cannot_be_loaded_again(store, timer, renderer):
    _start(store)
    store.dispatch(SessionEnd())
    starts, requests = timer.starts, len(renderer.requests)
    store.load(pages_for(2), page_duration=10)
    s = store.dispatch(Start())
    assert s.phase == Phase.ENDED
    assert not timer.active
    assert timer.starts == starts
    assert len(renderer.requests) == requests


def test_post_hook_receives_timer_and_render_events(renderer, timer, idle_timer):
    from state import PlaybackStore

    posted = []
    store = PlaybackStore(renderer=renderer, timer=timer, idle_timer=idle_timer, post=posted.append)
    _start(store)
    timer.fire()
    renderer.complete()
    assert [type(c).__name__ for c in posted] == ["Tick", "RenderCompleted"]
    assert store.state.elapsed == 0  # nothing applied until the host dispatches
    for cmd in posted:
        store.dispatch(cmd)
    assert store.state.elapsed == 1
    assert store.state.phase == Phase.DISPLAYING


def test_reload_keeps_tokens_monotonic(store, renderer):
    _start(store)
    first = store.state.render_token
    store.load(pages_for(1), page_duration=10)
    store.dispatch(Start())
    assert store.state.render_token > first
    renderer.complete(i=0, image="stale")  # result from before the reload
    assert store.state.frame is None
