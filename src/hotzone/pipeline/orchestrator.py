from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from hotzone.asr.base import TranscriptionBackend, TranscriptionResult
from hotzone.audio.slicer import AudioSlicer
from hotzone.config import Settings
from hotzone.models import (
    AUDIO_MISSING_SNIPPET,
    PROCESSING_FAILED_SNIPPET,
    Anchor,
    AudioSource,
    Hotzone,
    TranscriptSegment,
)
from hotzone.pipeline.merging import GAP_TOLERANCE_S, merge_hotzones
from hotzone.pipeline.snapping import snap_to_words
from hotzone.pipeline.windowing import (
    DEFAULT_CONFIDENCE,
    REACTION_OFFSET_S,
    WINDOW_HALF_WIDTH_S,
    window_anchor,
)
from hotzone.storage.cache import TranscriptCache

logger = logging.getLogger(__name__)


class HotzonePipeline:
    """Anchors -> candidate windows -> merged intervals -> transcribed, snapped hotzones."""

    def __init__(
        self,
        *,
        slicer: AudioSlicer,
        cache: TranscriptCache,
        backend: TranscriptionBackend,
        reaction_offset_s: float = REACTION_OFFSET_S,
        half_width_s: float = WINDOW_HALF_WIDTH_S,
        gap_tolerance_s: float = GAP_TOLERANCE_S,
        confidence: float = DEFAULT_CONFIDENCE,
    ) -> None:
        self.slicer = slicer
        self.cache = cache
        self.backend = backend
        self.reaction_offset_s = reaction_offset_s
        self.half_width_s = half_width_s
        self.gap_tolerance_s = gap_tolerance_s
        self.confidence = confidence

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        slicer: AudioSlicer,
        cache: TranscriptCache,
        backend: TranscriptionBackend,
    ) -> "HotzonePipeline":
        return cls(
            slicer=slicer,
            cache=cache,
            backend=backend,
            reaction_offset_s=settings.reaction_offset_s,
            half_width_s=settings.window_half_width_s,
            gap_tolerance_s=settings.merge_gap_tolerance_s,
            confidence=settings.default_confidence,
        )

    def build_intervals(
        self,
        anchors: Sequence[Anchor],
        transcript: Sequence[TranscriptSegment] = (),
    ) -> list[Hotzone]:
        audio_ids = {anchor.audio_id for anchor in anchors}
        if len(audio_ids) > 1:
            raise ValueError(f"Anchors must belong to one recording, got: {', '.join(sorted(audio_ids))}")

        candidates = [
            window_anchor(
                anchor,
                transcript,
                reaction_offset_s=self.reaction_offset_s,
                half_width_s=self.half_width_s,
                confidence=self.confidence,
            )
            for anchor in anchors
        ]
        return merge_hotzones(candidates, gap_tolerance_s=self.gap_tolerance_s)

    async def process(
        self,
        anchors: Sequence[Anchor],
        transcript: Sequence[TranscriptSegment] = (),
        audio_source: AudioSource = None,
    ) -> list[Hotzone]:
        merged = self.build_intervals(anchors, transcript)
        if not merged:
            return []

        logger.info("Starting batch transcription for %d hotzones", len(merged))
        return list(
            await asyncio.gather(
                *(self._process_interval(hotzone, transcript, audio_source) for hotzone in merged)
            )
        )

    @staticmethod
    def _fallback_snippet(hotzone: Hotzone, transcript: Sequence[TranscriptSegment]) -> Hotzone:
        for segment in transcript:
            if (
                segment.audio_id == hotzone.audio_id
                and segment.start_time <= hotzone.start_time
                and segment.end_time >= hotzone.end_time
            ):
                return hotzone.with_snippet(segment.text)
        return hotzone.with_snippet(AUDIO_MISSING_SNIPPET)

    async def _transcribe(self, hotzone: Hotzone, audio_source: AudioSource) -> TranscriptionResult:
        cached = await self.cache.lookup(hotzone.audio_id, hotzone.start_time, hotzone.end_time)
        if cached is not None:
            # Cached words are relative to the cached record's own start.
            offset = cached.start_time - hotzone.start_time
            words = tuple(word.shifted(offset) for word in cached.words)
            return TranscriptionResult(text=cached.text, words=words, backend="cache")

        segment = await self.slicer.slice(audio_source, hotzone.start_time, hotzone.end_time)
        logger.info("Transcribing hotzone %s", hotzone.id)
        result = await self.backend.transcribe(segment, filename=f"hotzone_{hotzone.id}.wav")
        await self.cache.store(
            hotzone.audio_id,
            hotzone.start_time,
            hotzone.end_time,
            result.text,
            result.words,
        )
        return result

    async def _process_interval(
        self,
        hotzone: Hotzone,
        transcript: Sequence[TranscriptSegment],
        audio_source: AudioSource,
    ) -> Hotzone:
        if audio_source is None:
            return self._fallback_snippet(hotzone, transcript)

        try:
            result = await self._transcribe(hotzone, audio_source)
            snapped = snap_to_words(hotzone, result.words, hotzone.start_time, result.text)
        except Exception as exc:
            logger.warning(
                "Hotzone %s [%.2f, %.2f] failed: %s",
                hotzone.id,
                hotzone.start_time,
                hotzone.end_time,
                exc,
            )
            return hotzone.with_snippet(PROCESSING_FAILED_SNIPPET)

        logger.debug("Hotzone %s complete: %r", hotzone.id, snapped.transcript_snippet[:20])
        return snapped
