"""
src/diastudio/shimmer.py

Decorative bar animation for when no live analysis is wired up.

Each bar loops through three randomized height keyframes (percent of the
canvas height) with its own duration, reversing direction on every repeat.
Heights carry no information about the audio.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import List, Optional, Tuple

REST_HEIGHT = 20.0
BAR_COUNT = 40


@dataclass(frozen=True)
class ShimmerBar:
    keyframes: Tuple[float, float, float]
    duration_s: float

    def height_at(self, t: float) -> float:
        if t <= 0:
            return self.keyframes[0]
        cycle, rem = divmod(t, self.duration_s)
        p = rem / self.duration_s
        if int(cycle) % 2 == 1:
            p = 1.0 - p
        p = _ease_in_out(p)

        a, b, c = self.keyframes
        if p <= 0.5:
            return a + (b - a) * (p / 0.5)
        return b + (c - b) * ((p - 0.5) / 0.5)


def _ease_in_out(p: float) -> float:
    return 0.5 - 0.5 * math.cos(math.pi * p)


def random_bar(rng: random.Random) -> ShimmerBar:
    return ShimmerBar(
        keyframes=(
            20.0 + rng.random() * 30.0,
            50.0 + rng.random() * 50.0,
            20.0 + rng.random() * 30.0,
        ),
        duration_s=0.8 + rng.random() * 0.5,
    )


class ShimmerBars:
    def __init__(self, count: int = BAR_COUNT, *, seed: Optional[int] = None) -> None:
        self.count = int(count)
        self._rng = random.Random(seed)
        self.bars: List[ShimmerBar] = []
        self.playing = False
        self._started_at = 0.0

    def set_playing(self, playing: bool, now: float = 0.0) -> None:
        if playing and not self.playing:
            self.bars = [random_bar(self._rng) for _ in range(self.count)]
            self._started_at = now
        self.playing = bool(playing)

    def heights(self, now: float = 0.0) -> List[float]:
        if not self.playing or not self.bars:
            return [REST_HEIGHT] * self.count
        t = now - self._started_at
        return [b.height_at(t) for b in self.bars]

    def draw(self, canvas, now: float = 0.0) -> None:
        n = self.count
        if n <= 0:
            return
        slot = canvas.width / n
        bar_w = slot * 0.5
        canvas.clear()
        for i, pct in enumerate(self.heights(now)):
            h = canvas.height * pct / 100.0
            canvas.fill_rect(i * slot + (slot - bar_w) / 2.0, canvas.height - h, bar_w, h)
