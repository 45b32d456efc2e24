from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import Protocol, Sequence

from hotzone.asr.base import WordTimestamp
from hotzone.errors import CacheWriteError
from hotzone.storage.models import CachedTranscript

logger = logging.getLogger(__name__)

COVERAGE_TOLERANCE_S = 1.0


class TranscriptStore(Protocol):
    def find_transcripts(self, audio_id: str, start_time: float, end_time: float) -> list[CachedTranscript]:
        """Return records overlapping the range."""

    def insert_transcript(
        self,
        *,
        audio_id: str,
        start_time: float,
        end_time: float,
        text: str,
        words: Sequence[WordTimestamp],
    ) -> int:
        """Insert a record and return its id."""


class TranscriptCache:
    """Reuse earlier transcriptions that cover a requested range.

    Only a single record that fully covers the range (within tolerance) is a hit.
    Overlapping records that each cover part of the range are not stitched together.
    """

    def __init__(self, store: TranscriptStore, tolerance_s: float = COVERAGE_TOLERANCE_S) -> None:
        self._store = store
        self.tolerance_s = tolerance_s

    async def lookup(self, audio_id: str, start_time: float, end_time: float) -> CachedTranscript | None:
        try:
            candidates = await asyncio.to_thread(
                self._store.find_transcripts, audio_id, start_time, end_time
            )
        except sqlite3.Error as exc:
            logger.warning("Transcript cache lookup failed for %s: %s", audio_id, exc)
            return None

        for candidate in candidates:
            if candidate.covers(start_time, end_time, self.tolerance_s):
                logger.debug(
                    "Cache hit for %s [%.2f, %.2f] -> record %d",
                    audio_id,
                    start_time,
                    end_time,
                    candidate.id,
                )
                return candidate
        logger.debug("Cache miss for %s [%.2f, %.2f]", audio_id, start_time, end_time)
        return None

    async def store(
        self,
        audio_id: str,
        start_time: float,
        end_time: float,
        text: str,
        words: Sequence[WordTimestamp],
    ) -> int | None:
        try:
            return await asyncio.to_thread(
                self._store.insert_transcript,
                audio_id=audio_id,
                start_time=start_time,
                end_time=end_time,
                text=text,
                words=words,
            )
        except CacheWriteError as exc:
            logger.warning("Transcript cache write skipped: %s", exc)
            return None
        except Exception as exc:
            logger.warning("Transcript cache write failed for %s: %s", audio_id, exc)
            return None
