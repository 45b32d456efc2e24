from __future__ import annotations

import io
import wave

import numpy as np
import pytest


def make_wav_bytes(seconds: float, sample_rate: int = 8000, channels: int = 1) -> bytes:
    """Ramp signal so slices can be located by sample value."""

    frames = int(sample_rate * seconds)
    ramp = np.linspace(-0.9, 0.9, frames, dtype=np.float32)
    samples = np.repeat(ramp[:, None], channels, axis=1)
    pcm16 = (samples * 32767.0).astype("<i2")
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as handle:
        handle.setnchannels(channels)
        handle.setsampwidth(2)
        handle.setframerate(sample_rate)
        handle.writeframes(pcm16.tobytes())
    return buffer.getvalue()


@pytest.fixture
def wav_60s() -> bytes:
    return make_wav_bytes(60.0)
