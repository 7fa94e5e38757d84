"""
src/diastudio/visualizer.py

Spectrum bar visualizer bound to a playing audio element.

The visualizer is written against four small platform protocols so the same
state machine drives the desktop player (diastudio.player) and the test fakes:

  AudioElement   src / play() / pause()
  AudioBackend   bind(element) -> SampleTap, close()
  FrameScheduler request_frame(cb) -> handle, cancel_frame(handle)
  Canvas         width / height / clear() / fill_rect(x, y, w, h)

States: idle -> bound (graph built, once) -> playing <-> paused.
An element can be bound to one graph only; the graph is built lazily on the
first update() and then reused for every source change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol, Sequence

import numpy as np

from diastudio.analyser import AnalyserNode, SampleTap

log = logging.getLogger(__name__)

IDLE = "idle"
BOUND = "bound"
PLAYING = "playing"
PAUSED = "paused"

FFT_SIZE = 256
BAR_WIDTH_SCALE = 2.5
BAR_GAP = 1.0


class GraphBindingError(RuntimeError):
    """Raised when an audio element is bound to a second analysis graph."""


class AudioElement(Protocol):
    src: str

    def play(self) -> None: ...

    def pause(self) -> None: ...


class AudioBackend(Protocol):
    def bind(self, element: AudioElement) -> SampleTap: ...

    def close(self) -> None: ...


class FrameScheduler(Protocol):
    def request_frame(self, callback: Callable[[float], None]) -> Any: ...

    def cancel_frame(self, handle: Any) -> None: ...


class Canvas(Protocol):
    width: float
    height: float

    def clear(self) -> None: ...

    def fill_rect(self, x: float, y: float, w: float, h: float) -> None: ...


@dataclass(frozen=True)
class Bar:
    x: float
    y: float
    width: float
    height: float


def compute_bars(
    values: Sequence[int],
    width: float,
    height: float,
    *,
    width_scale: float = BAR_WIDTH_SCALE,
    gap: float = BAR_GAP,
) -> List[Bar]:
    """
    One bottom-aligned bar per frequency bin, left to right, height v/255 of
    the canvas. Bars starting past the right edge are dropped.
    """
    n = len(values)
    if n == 0 or width <= 0 or height <= 0:
        return []
    bar_w = (width / n) * width_scale
    bars: List[Bar] = []
    x = 0.0
    for v in values:
        if x >= width:
            break
        h = (float(v) / 255.0) * height
        bars.append(Bar(x=x, y=height - h, width=bar_w, height=h))
        x += bar_w + gap
    return bars


@dataclass
class AnalyzerSession:
    element: AudioElement
    backend: AudioBackend
    analyser: AnalyserNode
    buffer: np.ndarray
    frame_handle: Any = None


class SpectrumVisualizer:
    def __init__(
        self,
        canvas: Canvas,
        scheduler: FrameScheduler,
        *,
        element_factory: Callable[[], AudioElement],
        backend_factory: Callable[[], AudioBackend],
        fft_size: int = FFT_SIZE,
    ) -> None:
        self.canvas = canvas
        self.scheduler = scheduler
        self._element_factory = element_factory
        self._backend_factory = backend_factory
        self._fft_size = fft_size

        self.state = IDLE
        self.source_url: Optional[str] = None
        self._session: Optional[AnalyzerSession] = None
        self._graph_failed = False
        self._disposed = False

    @property
    def session(self) -> Optional[AnalyzerSession]:
        return self._session

    @property
    def inert(self) -> bool:
        """True once graph construction failed or after dispose(); nothing more is drawn."""
        return self._graph_failed or self._disposed

    # ------------------------------------------------------------------
    # graph
    # ------------------------------------------------------------------

    def _ensure_session(self) -> bool:
        if self._session is not None:
            return True
        if self.inert:
            return False

        backend: Optional[AudioBackend] = None
        try:
            backend = self._backend_factory()
            element = self._element_factory()
            tap = backend.bind(element)
            analyser = AnalyserNode(self._fft_size)
            analyser.connect(tap)
        except Exception as e:
            log.error("Failed to set up audio graph: %s", e)
            self._graph_failed = True
            if backend is not None:
                try:
                    backend.close()
                except Exception as close_err:
                    log.debug("backend close after failed bind: %s", close_err)
            return False

        buf = np.zeros(analyser.frequency_bin_count, dtype=np.uint8)
        self._session = AnalyzerSession(element=element, backend=backend, analyser=analyser, buffer=buf)
        self.state = BOUND
        return True

    # ------------------------------------------------------------------
    # public surface
    # ------------------------------------------------------------------

    def update(self, source_url: str, playing: bool) -> None:
        """Sync to (source, playing). Called whenever either changes."""
        if not self._ensure_session():
            return
        assert self._session is not None

        if source_url != self.source_url:
            if self.state == PLAYING:
                self.pause()
            self._session.element.src = source_url
            self.source_url = source_url

        if playing:
            self.play()
        else:
            self.pause()

    def play(self) -> None:
        if self._session is None or self.state == PLAYING:
            return
        try:
            self._session.element.play()
        except Exception as e:
            log.error("Failed to play audio: %s", e)
            self.state = PAUSED
            return
        self.state = PLAYING
        self._schedule()

    def pause(self) -> None:
        if self._session is None or self.state != PLAYING:
            return
        self._cancel()
        try:
            self._session.element.pause()
        except Exception as e:
            log.error("Failed to pause audio: %s", e)
        self.state = PAUSED

    def toggle(self) -> None:
        if self.state == PLAYING:
            self.pause()
        else:
            self.play()

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        s = self._session
        if s is None:
            self.state = IDLE
            return
        self._cancel()
        try:
            s.element.pause()
            s.element.src = ""
        except Exception as e:
            log.error("Failed to release audio element: %s", e)
        s.analyser.disconnect()
        try:
            s.backend.close()
        except Exception as e:
            log.error("Failed to close audio backend: %s", e)
        self._session = None
        self.state = IDLE

    # ------------------------------------------------------------------
    # frame loop
    # ------------------------------------------------------------------

    def _schedule(self) -> None:
        assert self._session is not None
        self._cancel()
        self._session.frame_handle = self.scheduler.request_frame(self._on_frame)

    def _cancel(self) -> None:
        s = self._session
        if s is None or s.frame_handle is None:
            return
        self.scheduler.cancel_frame(s.frame_handle)
        s.frame_handle = None

    def _on_frame(self, _ts: float = 0.0) -> None:
        s = self._session
        if s is None or self.state != PLAYING:
            return
        s.frame_handle = None
        if getattr(s.element, "ended", False):
            self.state = PAUSED
            return
        self.draw_frame()
        s.frame_handle = self.scheduler.request_frame(self._on_frame)

    def draw_frame(self) -> List[Bar]:
        s = self._session
        if s is None:
            return []
        s.analyser.get_byte_frequency_data(s.buffer)
        bars = compute_bars(s.buffer.tolist(), self.canvas.width, self.canvas.height)
        self.canvas.clear()
        for b in bars:
            self.canvas.fill_rect(b.x, b.y, b.width, b.height)
        return bars
