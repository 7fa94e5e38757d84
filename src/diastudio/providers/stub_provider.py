from __future__ import annotations

import hashlib
import io
import math
import struct
import wave
from typing import Any, Dict

from diastudio.params import audio_data_uri, is_number
from diastudio.providers.base import Provider


def _stable_int_from_key(key: str, lo: int, hi: int) -> int:
    if hi <= lo:
        return lo
    h = int(hashlib.sha256(key.encode("utf-8")).hexdigest()[:8], 16)
    return lo + (h % (hi - lo + 1))


def _stub_wav_bytes(freq: float, duration_s: float = 1.5, sample_rate: int = 22050) -> bytes:
    """
    Deterministic mono PCM16 WAV, generated fully in-memory.
    """
    nframes = max(1, int(duration_s * sample_rate))
    amp = 0.25
    two_pi_f = 2.0 * math.pi * freq

    frames = bytearray()
    for i in range(nframes):
        t = i / sample_rate
        sample = amp * math.sin(two_pi_f * t)
        frames += struct.pack("<h", int(max(-1.0, min(1.0, sample)) * 32767.0))

    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(bytes(frames))
    return buf.getvalue()


class StubProvider(Provider):
    """
    Offline provider for development and tests.
    Produces real WAV audio (a tone keyed on the text) as a data URI.
    """

    name = "stub"

    def run(self, model_input: Dict[str, Any]) -> Any:
        text = str(model_input.get("text") or "")
        freq = float(_stable_int_from_key(text, 220, 439))

        speed = model_input.get("speed_factor")
        if not is_number(speed) or speed <= 0:
            speed = 1.0
        duration = min(6.0, max(0.5, 1.5 / float(speed)))

        return audio_data_uri(_stub_wav_bytes(freq, duration), "audio/wav")
