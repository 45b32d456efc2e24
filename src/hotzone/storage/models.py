from __future__ import annotations

from dataclasses import dataclass

from hotzone.asr.base import WordTimestamp


@dataclass(frozen=True, slots=True)
class CachedTranscript:
    id: int
    audio_id: str
    start_time: float
    end_time: float
    text: str
    words: tuple[WordTimestamp, ...]
    created_at: str

    def covers(self, start_time: float, end_time: float, tolerance_s: float) -> bool:
        return self.start_time <= start_time + tolerance_s and self.end_time >= end_time - tolerance_s
