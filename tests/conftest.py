from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import numpy as np
import pytest

from diastudio.config import Settings
from diastudio.providers.base import Provider


class FakeProvider(Provider):
    name = "fake"

    def __init__(self, output: Any = "https://cdn.example/a.wav", error: Optional[Exception] = None) -> None:
        self.output = output
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def run(self, model_input: Dict[str, Any]) -> Any:
        self.calls.append(model_input)
        if self.error is not None:
            raise self.error
        return self.output


class FakeElement:
    def __init__(self, *, fail_play: bool = False) -> None:
        self.src = ""
        self.fail_play = fail_play
        self.play_calls = 0
        self.pause_calls = 0
        self.ended = False

    def play(self) -> None:
        self.play_calls += 1
        self.ended = False
        if self.fail_play:
            raise RuntimeError("autoplay blocked")

    def pause(self) -> None:
        self.pause_calls += 1


class FakeTap:
    def __init__(self, samples: Optional[np.ndarray] = None) -> None:
        self.samples = samples if samples is not None else np.zeros(256)

    def read_window(self, n: int) -> np.ndarray:
        return self.samples[-n:]


class FakeBackend:
    def __init__(self, tap: Optional[FakeTap] = None, *, fail: bool = False, fail_close: bool = False) -> None:
        self.tap = tap or FakeTap()
        self.fail = fail
        self.fail_close = fail_close
        self.bound: List[Any] = []
        self.closed = False

    def bind(self, element: Any) -> FakeTap:
        if self.fail:
            raise RuntimeError("audio context unavailable")
        self.bound.append(element)
        return self.tap

    def close(self) -> None:
        self.closed = True
        if self.fail_close:
            raise RuntimeError("PortAudio error")


class FakeScheduler:
    """Holds callbacks until run_next(); tracks what is still pending."""

    def __init__(self) -> None:
        self.pending: Dict[int, Callable[[float], None]] = {}
        self.cancelled: List[int] = []
        self._next = 0

    def request_frame(self, callback: Callable[[float], None]) -> int:
        self._next += 1
        self.pending[self._next] = callback
        return self._next

    def cancel_frame(self, handle: int) -> None:
        self.cancelled.append(handle)
        self.pending.pop(handle, None)

    def run_next(self, ts: float = 0.0) -> None:
        handle = min(self.pending)
        cb = self.pending.pop(handle)
        cb(ts)


class FakeCanvas:
    def __init__(self, width: float = 256, height: float = 100) -> None:
        self.width = width
        self.height = height
        self.rects: List[tuple] = []
        self.clears = 0

    def clear(self) -> None:
        self.clears += 1
        self.rects = []

    def fill_rect(self, x: float, y: float, w: float, h: float) -> None:
        self.rects.append((x, y, w, h))


@pytest.fixture
def settings() -> Settings:
    return Settings(provider="fake", replicate_api_token="", poll_interval_s=0.0)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()
