"""
src/diastudio/player.py

Desktop platform for the visualizer:

  StreamingAudioElement    decode with soundfile, play through a sounddevice
                           output stream, keep the last output samples as the
                           analyser tap
  SoundDeviceBackend       binds elements (once each) and hands out their taps
  MatplotlibCanvas         bar drawing surface in canvas coordinates (y down)
  MatplotlibFrameScheduler single-shot GUI timers (~60 fps), main thread only

sounddevice and matplotlib are imported lazily: sounddevice needs PortAudio
at import time and matplotlib needs a GUI backend, neither of which exists on
headless CI.
"""

from __future__ import annotations

import io
import itertools
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import soundfile as sf

from diastudio.client import fetch_audio_bytes
from diastudio.visualizer import GraphBindingError

log = logging.getLogger(__name__)


class StreamingAudioElement:
    def __init__(self, *, history: int = 4096, block_size: int = 1024) -> None:
        self._src = ""
        self._data: Optional[np.ndarray] = None  # (frames, channels) float32
        self._sample_rate = 0
        self._pos = 0
        self._stream: Any = None
        self._lock = threading.Lock()
        self._history_len = int(history)
        self._history = np.zeros(self._history_len, dtype=np.float32)
        self.block_size = int(block_size)
        self.bound_graph = False
        self.ended = False

    # src -----------------------------------------------------------------

    @property
    def src(self) -> str:
        return self._src

    @src.setter
    def src(self, value: str) -> None:
        self._stop_stream()
        with self._lock:
            self._src = value or ""
            self._data = None
            self._pos = 0
            self.ended = False
            self._history[:] = 0.0

    def _load(self) -> None:
        raw = fetch_audio_bytes(self._src)
        data, sr = sf.read(io.BytesIO(raw), dtype="float32", always_2d=True)
        log.info("loaded audio: %d frames, %d ch, %d Hz", data.shape[0], data.shape[1], sr)
        with self._lock:
            self._data = data
            self._sample_rate = int(sr)
            self._pos = 0

    # playback ------------------------------------------------------------

    @property
    def playing(self) -> bool:
        return self._stream is not None

    def play(self) -> None:
        if not self._src:
            raise RuntimeError("no audio source set")
        if self._stream is not None:
            if self._stream.active:
                return
            # finished on its own (CallbackStop at end of data)
            self._stop_stream()
        if self._data is None:
            self._load()
        assert self._data is not None
        if self.ended:
            with self._lock:
                self._pos = 0
                self.ended = False

        import sounddevice as sd

        stream = sd.OutputStream(
            samplerate=self._sample_rate,
            channels=self._data.shape[1],
            dtype="float32",
            blocksize=self.block_size,
            callback=self._callback,
        )
        stream.start()
        self._stream = stream

    def pause(self) -> None:
        self._stop_stream()

    def _stop_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()

    def _callback(self, outdata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:
        if status:
            log.debug("output stream status: %s", status)
        if self._fill(outdata, frames):
            import sounddevice as sd

            raise sd.CallbackStop()

    def _fill(self, outdata: np.ndarray, frames: int) -> bool:
        """Copy the next block into outdata and the tap history; True once the data ran out."""
        with self._lock:
            data = self._data
            if data is None:
                outdata.fill(0)
                return False
            chunk = data[self._pos:self._pos + frames]
            n = chunk.shape[0]
            outdata[:n] = chunk
            if n < frames:
                outdata[n:] = 0
                self.ended = True
            self._pos += n
            if n:
                mono = chunk.mean(axis=1)
                self._history = np.concatenate([self._history, mono])[-self._history_len:]
            return self.ended

    # tap -----------------------------------------------------------------

    def read_window(self, n: int) -> np.ndarray:
        with self._lock:
            h = self._history.copy()
        if n <= h.size:
            return h[-n:]
        return np.concatenate([np.zeros(n - h.size, dtype=np.float32), h])


class SoundDeviceBackend:
    """One per visualizer. Each element may be bound exactly once, ever."""

    def __init__(self) -> None:
        self._elements: List[StreamingAudioElement] = []

    def bind(self, element: StreamingAudioElement) -> StreamingAudioElement:
        if getattr(element, "bound_graph", False):
            raise GraphBindingError("audio element is already bound to an analysis graph")
        element.bound_graph = True
        self._elements.append(element)
        return element

    def close(self) -> None:
        for el in self._elements:
            try:
                el.pause()
            except Exception as e:
                log.error("Failed to stop output stream: %s", e)
        self._elements.clear()


class MatplotlibCanvas:
    def __init__(
        self,
        width: float = 512,
        height: float = 96,
        *,
        color: str = "#0060df",
        background: str = "black",
        title: str = "DiaStudio",
    ) -> None:
        import matplotlib.pyplot as plt

        self.width = float(width)
        self.height = float(height)
        self.color = color

        dpi = 100
        self.figure = plt.figure(figsize=(self.width / dpi * 2, self.height / dpi * 2), dpi=dpi)
        self.figure.patch.set_facecolor(background)
        try:
            self.figure.canvas.manager.set_window_title(title)
        except AttributeError:
            pass
        self.ax = self.figure.add_axes([0, 0, 1, 1])
        self.ax.set_xlim(0, self.width)
        self.ax.set_ylim(0, self.height)
        self.ax.set_facecolor(background)
        self.ax.set_axis_off()

    def clear(self) -> None:
        for p in list(self.ax.patches):
            p.remove()

    def fill_rect(self, x: float, y: float, w: float, h: float) -> None:
        from matplotlib.patches import Rectangle

        if w <= 0 or h <= 0:
            return
        # canvas y grows downward; axes y grows upward
        self.ax.add_patch(Rectangle((x, self.height - y - h), w, h, color=self.color))


class MatplotlibFrameScheduler:
    def __init__(self, figure: Any, *, fps: float = 60.0) -> None:
        self.figure = figure
        self.interval_ms = max(1, int(1000.0 / max(1.0, fps)))
        self._timers: Dict[int, Any] = {}
        self._ids = itertools.count(1)

    def request_frame(self, callback: Callable[[float], None]) -> int:
        handle = next(self._ids)
        timer = self.figure.canvas.new_timer(interval=self.interval_ms)
        timer.single_shot = True
        timer.add_callback(self._fire, handle, callback)
        self._timers[handle] = timer
        timer.start()
        return handle

    def cancel_frame(self, handle: int) -> None:
        timer = self._timers.pop(handle, None)
        if timer is not None:
            timer.stop()

    def _fire(self, handle: int, callback: Callable[[float], None]) -> None:
        if self._timers.pop(handle, None) is None:
            return
        callback(time.monotonic())
        self.figure.canvas.draw_idle()
