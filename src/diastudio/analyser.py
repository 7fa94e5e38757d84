"""
src/diastudio/analyser.py

Frequency analyser with Web Audio AnalyserNode semantics:

- analysis window of fft_size most recent samples, Blackman-windowed
- magnitude |X[k]| / fft_size for the first fft_size/2 bins
- exponential smoothing across frames (smoothing_time_constant)
- byte output: dB mapped linearly from [min_decibels, max_decibels] to [0, 255]

The analyser reads samples from a tap (anything with read_window(n)). A tap is
what an audio backend hands back when it binds an audio element.
"""

from __future__ import annotations

from typing import Optional, Protocol

import numpy as np


class SampleTap(Protocol):
    def read_window(self, n: int) -> np.ndarray:
        """Most recent n mono samples sent to the output, zero-padded at the front."""
        ...


def blackman_window(n: int) -> np.ndarray:
    a0, a1, a2 = 0.42, 0.5, 0.08
    i = np.arange(n, dtype=np.float64)
    return a0 - a1 * np.cos(2.0 * np.pi * i / n) + a2 * np.cos(4.0 * np.pi * i / n)


class AnalyserNode:
    def __init__(
        self,
        fft_size: int = 256,
        *,
        smoothing_time_constant: float = 0.8,
        min_decibels: float = -100.0,
        max_decibels: float = -30.0,
    ) -> None:
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {fft_size}")
        if max_decibels <= min_decibels:
            raise ValueError("max_decibels must be greater than min_decibels")
        if not 0.0 <= smoothing_time_constant <= 1.0:
            raise ValueError("smoothing_time_constant must be within [0, 1]")

        self.fft_size = int(fft_size)
        self.smoothing_time_constant = float(smoothing_time_constant)
        self.min_decibels = float(min_decibels)
        self.max_decibels = float(max_decibels)

        self._window = blackman_window(self.fft_size)
        self._smoothed = np.zeros(self.frequency_bin_count, dtype=np.float64)
        self._tap: Optional[SampleTap] = None

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2

    def connect(self, tap: SampleTap) -> None:
        self._tap = tap

    def disconnect(self) -> None:
        self._tap = None

    def _read(self) -> np.ndarray:
        if self._tap is None:
            return np.zeros(self.fft_size, dtype=np.float64)
        block = np.asarray(self._tap.read_window(self.fft_size), dtype=np.float64).reshape(-1)
        if block.size < self.fft_size:
            block = np.concatenate([np.zeros(self.fft_size - block.size), block])
        return block[-self.fft_size:]

    def get_float_frequency_data(self) -> np.ndarray:
        """Smoothed spectrum in dB (-inf where the bin is silent). Advances smoothing state."""
        spectrum = np.fft.rfft(self._read() * self._window)[: self.frequency_bin_count]
        magnitude = np.abs(spectrum) / self.fft_size

        tau = self.smoothing_time_constant
        self._smoothed = tau * self._smoothed + (1.0 - tau) * magnitude

        with np.errstate(divide="ignore"):
            return 20.0 * np.log10(self._smoothed)

    def get_byte_frequency_data(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        db = self.get_float_frequency_data()
        scale = 255.0 / (self.max_decibels - self.min_decibels)
        scaled = np.floor(scale * (db - self.min_decibels))
        scaled = np.nan_to_num(scaled, nan=0.0, neginf=0.0, posinf=255.0)
        values = np.clip(scaled, 0, 255).astype(np.uint8)
        if out is None:
            return values
        n = min(out.shape[0], values.shape[0])
        out[:n] = values[:n]
        return out
