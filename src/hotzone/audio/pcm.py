from __future__ import annotations

import io
import math
import wave
from dataclasses import dataclass

import numpy as np

from hotzone.errors import DecodeError, InvalidRange


@dataclass(frozen=True, slots=True)
class PcmAudio:
    """Float32 samples shaped (frames, channels) in [-1, 1]."""

    samples: np.ndarray
    sample_rate: int

    @property
    def channels(self) -> int:
        return int(self.samples.shape[1])

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration(self) -> float:
        return self.frame_count / float(self.sample_rate)


def is_wav(data: bytes) -> bool:
    return len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WAVE"


def read_wav(data: bytes) -> PcmAudio:
    """Read integer PCM WAV bytes into float32 samples."""

    try:
        with wave.open(io.BytesIO(data), "rb") as handle:
            channels = handle.getnchannels()
            sample_rate = handle.getframerate()
            sample_width = handle.getsampwidth()
            frames = handle.readframes(handle.getnframes())
    except (wave.Error, EOFError) as exc:
        raise DecodeError(f"Unreadable WAV data: {exc}") from exc

    if sample_width == 1:
        waveform = (np.frombuffer(frames, dtype=np.uint8).astype(np.float32) - 128.0) / 128.0
    elif sample_width == 2:
        waveform = np.frombuffer(frames, dtype="<i2").astype(np.float32) / 32768.0
    elif sample_width == 4:
        waveform = np.frombuffer(frames, dtype="<i4").astype(np.float32) / 2147483648.0
    else:
        raise DecodeError(f"Unsupported WAV sample width: {sample_width * 8} bits")

    usable = (waveform.size // channels) * channels
    return PcmAudio(samples=waveform[:usable].reshape(-1, channels), sample_rate=sample_rate)


def encode_wav(audio: PcmAudio) -> bytes:
    """Encode samples as a 16-bit little-endian PCM RIFF/WAVE container."""

    clipped = np.clip(audio.samples, -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 32768.0, clipped * 32767.0)
    pcm16 = scaled.astype("<i2")

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as handle:
        handle.setnchannels(audio.channels)
        handle.setsampwidth(2)
        handle.setframerate(audio.sample_rate)
        handle.writeframes(pcm16.tobytes())
    return buffer.getvalue()


def slice_pcm(audio: PcmAudio, start_s: float, end_s: float) -> PcmAudio:
    if start_s < 0:
        raise InvalidRange(f"Slice start must be >= 0, got {start_s}")
    start_frame = math.floor(start_s * audio.sample_rate)
    end_frame = min(math.floor(end_s * audio.sample_rate), audio.frame_count)
    if end_frame <= start_frame:
        raise InvalidRange(
            f"Empty slice for [{start_s:.3f}, {end_s:.3f}] "
            f"(audio duration {audio.duration:.3f}s)"
        )
    return PcmAudio(
        samples=audio.samples[start_frame:end_frame].copy(),
        sample_rate=audio.sample_rate,
    )
