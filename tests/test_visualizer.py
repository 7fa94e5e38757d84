from __future__ import annotations

import numpy as np
import pytest

from conftest import FakeBackend, FakeCanvas, FakeElement, FakeScheduler, FakeTap
from diastudio.visualizer import (
    BOUND,
    IDLE,
    PAUSED,
    PLAYING,
    SpectrumVisualizer,
    compute_bars,
)


def _viz(element=None, backend=None, canvas=None):
    element = element or FakeElement()
    backend = backend or FakeBackend()
    scheduler = FakeScheduler()
    viz = SpectrumVisualizer(
        canvas or FakeCanvas(),
        scheduler,
        element_factory=lambda: element,
        backend_factory=lambda: backend,
    )
    return viz, element, backend, scheduler


def test_initial_state_is_idle_and_pause_is_a_noop():
    viz, element, _, scheduler = _viz()
    viz.pause()
    assert viz.state == IDLE
    assert element.pause_calls == 0
    assert scheduler.pending == {}


def test_update_binds_lazily_and_plays():
    viz, element, backend, scheduler = _viz()
    viz.update("https://cdn.example/a.wav", playing=True)
    assert backend.bound == [element]
    assert element.src == "https://cdn.example/a.wav"
    assert element.play_calls == 1
    assert viz.state == PLAYING
    assert len(scheduler.pending) == 1


def test_update_paused_binds_without_playing():
    viz, element, _, scheduler = _viz()
    viz.update("a.wav", playing=False)
    assert viz.state == BOUND
    assert element.play_calls == 0
    assert scheduler.pending == {}


def test_double_start_keeps_a_single_loop():
    viz, element, _, scheduler = _viz()
    viz.update("a.wav", playing=True)
    viz.update("a.wav", playing=True)
    viz.play()
    assert element.play_calls == 1
    assert len(scheduler.pending) == 1

    scheduler.run_next()
    scheduler.run_next()
    assert len(scheduler.pending) == 1


def test_pause_cancels_pending_frame():
    viz, element, _, scheduler = _viz()
    viz.update("a.wav", playing=True)
    viz.update("a.wav", playing=False)
    assert viz.state == PAUSED
    assert scheduler.pending == {}
    assert element.pause_calls == 1

    viz.pause()
    assert element.pause_calls == 1


def test_resume_after_pause_restarts_loop():
    viz, element, _, scheduler = _viz()
    viz.update("a.wav", playing=True)
    viz.pause()
    viz.play()
    assert viz.state == PLAYING
    assert element.play_calls == 2
    assert len(scheduler.pending) == 1


def test_source_change_reuses_graph():
    viz, element, backend, _ = _viz()
    viz.update("a.wav", playing=True)
    session = viz.session
    viz.update("b.wav", playing=True)
    assert viz.session is session
    assert backend.bound == [element]
    assert element.src == "b.wav"
    assert viz.state == PLAYING


def test_graph_failure_leaves_visualizer_inert():
    viz, element, backend, scheduler = _viz(backend=FakeBackend(fail=True))
    viz.update("a.wav", playing=True)
    assert viz.inert
    assert viz.state == IDLE
    assert element.play_calls == 0
    assert backend.closed

    viz.update("b.wav", playing=True)
    assert scheduler.pending == {}


def test_play_failure_resets_to_paused():
    viz, element, _, scheduler = _viz(element=FakeElement(fail_play=True))
    viz.update("a.wav", playing=True)
    assert viz.state == PAUSED
    assert scheduler.pending == {}


def test_frame_draws_bars_from_analyser():
    t = np.arange(256)
    tap = FakeTap(0.5 * np.sin(2 * np.pi * 4 * t / 256))
    canvas = FakeCanvas(width=256, height=100)
    viz, _, _, scheduler = _viz(backend=FakeBackend(tap), canvas=canvas)
    viz.update("a.wav", playing=True)
    scheduler.run_next()
    assert canvas.clears == 1
    assert canvas.rects
    tallest = max(canvas.rects, key=lambda r: r[3])
    assert tallest[0] == pytest.approx(4 * (256 / 128 * 2.5 + 1))


def test_frame_after_pause_does_not_draw():
    canvas = FakeCanvas()
    viz, _, _, scheduler = _viz(canvas=canvas)
    viz.update("a.wav", playing=True)
    cb = scheduler.pending[min(scheduler.pending)]
    viz.pause()
    cb(0.0)
    assert canvas.clears == 0
    assert scheduler.pending == {}


def test_dispose_releases_everything():
    viz, element, backend, scheduler = _viz()
    viz.update("a.wav", playing=True)
    viz.dispose()
    assert scheduler.pending == {}
    assert element.src == ""
    assert backend.closed
    assert viz.state == IDLE
    assert viz.session is None

    viz.update("b.wav", playing=True)
    assert element.play_calls == 1
    viz.dispose()


def test_compute_bars_layout():
    bars = compute_bars([255, 0, 51], width=30, height=100, width_scale=1.0, gap=1.0)
    expected = [
        (0.0, 0.0, 10.0, 100.0),
        (11.0, 100.0, 10.0, 0.0),
        (22.0, 80.0, 10.0, 20.0),
    ]
    assert [(b.x, b.y, b.width, b.height) for b in bars] == [pytest.approx(e) for e in expected]


def test_compute_bars_stops_at_canvas_edge():
    bars = compute_bars([10] * 128, width=256, height=50)
    # bar width 5 + gap 1 -> 43 bars start inside 256px
    assert len(bars) == 43
    assert all(b.x < 256 for b in bars)


def test_compute_bars_empty():
    assert compute_bars([], 100, 100) == []


def test_playback_end_stops_loop_and_toggle_restarts():
    canvas = FakeCanvas()
    viz, element, _, scheduler = _viz(canvas=canvas)
    viz.update("a.wav", playing=True)
    scheduler.run_next()
    assert canvas.clears == 1

    element.ended = True
    scheduler.run_next()
    assert viz.state == PAUSED
    assert scheduler.pending == {}
    assert canvas.clears == 1

    viz.toggle()
    assert viz.state == PLAYING
    assert element.play_calls == 2
    assert len(scheduler.pending) == 1


def test_dispose_survives_backend_close_error():
    viz, _, backend, scheduler = _viz(backend=FakeBackend(fail_close=True))
    viz.update("a.wav", playing=True)
    viz.dispose()
    assert backend.closed
    assert viz.session is None
    assert viz.state == IDLE
    assert scheduler.pending == {}
