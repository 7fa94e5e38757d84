from __future__ import annotations

from conftest import FakeCanvas, FakeElement, FakeScheduler
from diastudio.play_cli import ShimmerDriver
from diastudio.shimmer import ShimmerBars


def _driver(element=None):
    element = element or FakeElement()
    scheduler = FakeScheduler()
    canvas = FakeCanvas()
    return ShimmerDriver(canvas, scheduler, element, ShimmerBars(count=8, seed=1)), element, scheduler, canvas


def test_play_is_idempotent_and_loops():
    d, element, scheduler, canvas = _driver()
    d.play()
    d.play()
    assert element.play_calls == 1
    assert len(scheduler.pending) == 1
    scheduler.run_next(0.25)
    assert len(canvas.rects) == 8
    assert len(scheduler.pending) == 1


def test_pause_never_started_is_noop():
    d, element, scheduler, _ = _driver()
    d.pause()
    assert element.pause_calls == 0
    assert scheduler.pending == {}


def test_toggle_and_dispose():
    d, element, scheduler, canvas = _driver()
    d.toggle()
    assert d.playing
    d.toggle()
    assert not d.playing
    assert scheduler.pending == {}
    assert all(r[3] == 20.0 for r in canvas.rects)
    d.dispose()
    assert element.src == ""


def test_play_failure_stays_paused():
    d, _, scheduler, _ = _driver(FakeElement(fail_play=True))
    d.play()
    assert not d.playing
    assert scheduler.pending == {}


def test_shimmer_settles_when_playback_ends():
    d, element, scheduler, canvas = _driver()
    d.play()
    element.ended = True
    scheduler.run_next(0.5)
    assert not d.playing
    assert scheduler.pending == {}
    assert all(r[3] == 20.0 for r in canvas.rects)

    d.toggle()
    assert d.playing
    assert element.play_calls == 2
