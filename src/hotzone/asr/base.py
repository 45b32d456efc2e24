from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True, slots=True)
class WordTimestamp:
    word: str
    start: float
    end: float

    def shifted(self, offset: float) -> "WordTimestamp":
        return WordTimestamp(word=self.word, start=self.start + offset, end=self.end + offset)


@dataclass(frozen=True, slots=True)
class TranscriptionResult:
    """Text plus word timings relative to the start of the submitted segment."""

    text: str
    words: tuple[WordTimestamp, ...] = field(default_factory=tuple)
    backend: str = "unknown"


class TranscriptionBackend(Protocol):
    async def transcribe(self, audio: bytes, filename: str = "hotzone.wav") -> TranscriptionResult:
        """Transcribe an encoded audio segment."""
