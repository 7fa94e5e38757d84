"""
src/diastudio/play_cli.py

`diastudio play SOURCE`: play generated audio in a desktop window with the
spectrum visualizer (or the decorative shimmer with --shimmer).

SOURCE may be an http(s) URL, a data: URI, or a local file. Space toggles
play/pause; closing the window disposes the audio graph.
"""

from __future__ import annotations

import argparse
import logging
import time
from typing import Any, Optional

from diastudio.shimmer import ShimmerBars

log = logging.getLogger(__name__)


class ShimmerDriver:
    """Drives ShimmerBars from the frame scheduler while the element plays."""

    def __init__(self, canvas: Any, scheduler: Any, element: Any, bars: ShimmerBars) -> None:
        self.canvas = canvas
        self.scheduler = scheduler
        self.element = element
        self.bars = bars
        self._handle: Optional[Any] = None

    @property
    def playing(self) -> bool:
        return self.bars.playing

    def play(self) -> None:
        if self.bars.playing:
            return
        try:
            self.element.play()
        except Exception as e:
            log.error("Failed to play audio: %s", e)
            return
        self.bars.set_playing(True, time.monotonic())
        self._handle = self.scheduler.request_frame(self._on_frame)

    def pause(self) -> None:
        if not self.bars.playing:
            return
        if self._handle is not None:
            self.scheduler.cancel_frame(self._handle)
            self._handle = None
        try:
            self.element.pause()
        except Exception as e:
            log.error("Failed to pause audio: %s", e)
        self.bars.set_playing(False)
        self.bars.draw(self.canvas)

    def toggle(self) -> None:
        if self.bars.playing:
            self.pause()
        else:
            self.play()

    def dispose(self) -> None:
        self.pause()
        try:
            self.element.src = ""
        except Exception as e:
            log.error("Failed to release audio element: %s", e)

    def _on_frame(self, ts: float) -> None:
        self._handle = None
        if not self.bars.playing:
            return
        if getattr(self.element, "ended", False):
            self.bars.set_playing(False)
            self.bars.draw(self.canvas)
            return
        self.bars.draw(self.canvas, ts)
        self._handle = self.scheduler.request_frame(self._on_frame)


def cmd_play(args: argparse.Namespace) -> int:
    import matplotlib.pyplot as plt

    from diastudio.player import (
        MatplotlibCanvas,
        MatplotlibFrameScheduler,
        SoundDeviceBackend,
        StreamingAudioElement,
    )
    from diastudio.visualizer import SpectrumVisualizer

    canvas = MatplotlibCanvas(args.width, args.height)
    scheduler = MatplotlibFrameScheduler(canvas.figure, fps=args.fps)
    element = StreamingAudioElement()

    if args.shimmer:
        element.src = args.source
        driver: Any = ShimmerDriver(canvas, scheduler, element, ShimmerBars(seed=args.seed))
        driver.play()
    else:
        driver = SpectrumVisualizer(
            canvas,
            scheduler,
            element_factory=lambda: element,
            backend_factory=SoundDeviceBackend,
        )
        driver.update(args.source, playing=True)

    def _on_key(event: Any) -> None:
        if event.key == " ":
            driver.toggle()

    canvas.figure.canvas.mpl_connect("key_press_event", _on_key)
    try:
        plt.show()
    finally:
        driver.dispose()
    return 0


def register_play_subcommand(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser("play", help="Play audio with the spectrum visualizer")
    p.add_argument("source", help="Audio URL, data: URI, or local file")
    p.add_argument("--shimmer", action="store_true", help="Decorative bars instead of live analysis")
    p.add_argument("--width", type=int, default=512)
    p.add_argument("--height", type=int, default=96)
    p.add_argument("--fps", type=float, default=60.0)
    p.add_argument("--seed", type=int, default=None, help="Seed for --shimmer bar randomization")
    p.set_defaults(func=cmd_play)
