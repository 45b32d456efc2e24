from __future__ import annotations

import asyncio

import pytest

from conftest import make_wav_bytes
from hotzone.asr.base import TranscriptionResult, WordTimestamp
from hotzone.audio.slicer import AudioSlicer
from hotzone.errors import TranscriptionError
from hotzone.models import (
    AUDIO_MISSING_SNIPPET,
    PROCESSING_FAILED_SNIPPET,
    Anchor,
    LocalAudio,
    TranscriptSegment,
)
from hotzone.pipeline.orchestrator import HotzonePipeline
from hotzone.storage.cache import TranscriptCache
from hotzone.storage.db import HotzoneDB


class FakeBackend:
    def __init__(self) -> None:
        self.calls = 0

    async def transcribe(self, audio: bytes, filename: str = "hotzone.wav") -> TranscriptionResult:
        self.calls += 1
        call = self.calls
        await asyncio.sleep(0)
        return TranscriptionResult(
            text=f"speech {call}",
            words=(
                WordTimestamp(word="speech", start=0.5, end=1.0),
                WordTimestamp(word=str(call), start=1.2, end=15.0),
            ),
            backend="fake",
        )


@pytest.fixture
def cache(tmp_path) -> TranscriptCache:
    db = HotzoneDB(tmp_path / "hotzone.db")
    db.initialize()
    return TranscriptCache(db)


def _pipeline(cache: TranscriptCache, backend) -> HotzonePipeline:
    return HotzonePipeline(slicer=AudioSlicer(), cache=cache, backend=backend)


@pytest.mark.asyncio
async def test_empty_batch(cache: TranscriptCache) -> None:
    backend = FakeBackend()

    assert await _pipeline(cache, backend).process([]) == []
    assert backend.calls == 0


def test_close_anchors_merge_into_one_hotzone(cache: TranscriptCache) -> None:
    pipeline = _pipeline(cache, FakeBackend())
    anchors = [Anchor(audio_id="ep1", timestamp=50.0), Anchor(audio_id="ep1", timestamp=54.0)]

    merged = pipeline.build_intervals(anchors)

    assert len(merged) == 1
    assert merged[0].start_time == pytest.approx(38.0)
    assert merged[0].end_time == pytest.approx(62.0)
    assert [item.action for item in merged[0].metadata.user_adjustment_history] == ["merge"]


@pytest.mark.asyncio
async def test_missing_audio_source_marks_sentinel(cache: TranscriptCache) -> None:
    backend = FakeBackend()
    pipeline = _pipeline(cache, backend)

    hotzones = await pipeline.process([Anchor(audio_id="ep1", timestamp=50.0)])

    assert len(hotzones) == 1
    assert hotzones[0].transcript_snippet == AUDIO_MISSING_SNIPPET
    assert (hotzones[0].start_time, hotzones[0].end_time) == (38.0, 58.0)
    assert backend.calls == 0


@pytest.mark.asyncio
async def test_missing_audio_source_uses_covering_fallback_segment(cache: TranscriptCache) -> None:
    pipeline = _pipeline(cache, FakeBackend())
    anchors = [Anchor(audio_id="ep1", timestamp=50.0)]
    transcript = [TranscriptSegment(audio_id="ep1", text="A long monologue.", start_time=30.0, end_time=70.0)]

    hotzones = await pipeline.process(anchors, transcript)

    assert hotzones[0].transcript_snippet == "A long monologue."
    assert (hotzones[0].start_time, hotzones[0].end_time) == (30.0, 70.0)


@pytest.mark.asyncio
async def test_missing_audio_source_ignores_partially_covering_context(cache: TranscriptCache) -> None:
    pipeline = _pipeline(cache, FakeBackend())
    transcript = [
        TranscriptSegment(audio_id="ep1", text="one.", start_time=36.0, end_time=45.0),
        TranscriptSegment(audio_id="ep1", text="two.", start_time=45.0, end_time=60.0),
    ]

    hotzones = await pipeline.process([Anchor(audio_id="ep1", timestamp=50.0)], transcript)

    assert hotzones[0].transcript_snippet == AUDIO_MISSING_SNIPPET
    assert (hotzones[0].start_time, hotzones[0].end_time) == (36.0, 60.0)


@pytest.mark.asyncio
async def test_local_audio_is_transcribed_and_snapped(cache: TranscriptCache) -> None:
    backend = FakeBackend()
    pipeline = _pipeline(cache, backend)
    source = LocalAudio(data=make_wav_bytes(120.0))

    hotzones = await pipeline.process([Anchor(audio_id="ep1", timestamp=50.0)], audio_source=source)

    hotzone = hotzones[0]
    assert hotzone.transcript_snippet == "speech 1"
    assert hotzone.start_time == pytest.approx(38.5)
    assert hotzone.end_time == pytest.approx(53.0)
    assert hotzone.words[0].start == pytest.approx(38.5)
    assert [item.action for item in hotzone.metadata.user_adjustment_history] == ["shrink"]
    assert backend.calls == 1


@pytest.mark.asyncio
async def test_second_run_is_served_from_cache(cache: TranscriptCache) -> None:
    backend = FakeBackend()
    pipeline = _pipeline(cache, backend)
    source = LocalAudio(data=make_wav_bytes(120.0))
    anchors = [Anchor(audio_id="ep1", timestamp=50.0)]

    first = await pipeline.process(anchors, audio_source=source)
    second = await pipeline.process(anchors, audio_source=source)

    assert backend.calls == 1
    assert second[0].transcript_snippet == first[0].transcript_snippet
    assert second[0].start_time == pytest.approx(first[0].start_time)
    assert second[0].end_time == pytest.approx(first[0].end_time)


class StartTaggingSlicer:
    """Returns the requested start time instead of audio so failures can be targeted."""

    async def slice(self, source, start_s: float, end_s: float) -> bytes:
        return f"{start_s:.1f}".encode()


class FailingForSegmentBackend(FakeBackend):
    def __init__(self, failing_segment: bytes) -> None:
        super().__init__()
        self.failing_segment = failing_segment

    async def transcribe(self, audio: bytes, filename: str = "hotzone.wav") -> TranscriptionResult:
        if audio == self.failing_segment:
            raise TranscriptionError("Transcription API error (503): unavailable")
        return await super().transcribe(audio, filename)


@pytest.mark.asyncio
async def test_single_failure_does_not_abort_batch(cache: TranscriptCache) -> None:
    backend = FailingForSegmentBackend(failing_segment=b"68.0")
    pipeline = HotzonePipeline(slicer=StartTaggingSlicer(), cache=cache, backend=backend)
    anchors = [
        Anchor(audio_id="ep1", timestamp=20.0),
        Anchor(audio_id="ep1", timestamp=80.0),
        Anchor(audio_id="ep1", timestamp=140.0),
    ]

    hotzones = await pipeline.process(anchors, audio_source=LocalAudio(data=b""))

    assert len(hotzones) == 3
    by_start = sorted(hotzones, key=lambda hz: hz.start_time)
    assert [item.transcript_snippet == PROCESSING_FAILED_SNIPPET for item in by_start] == [
        False,
        True,
        False,
    ]
    assert (by_start[1].start_time, by_start[1].end_time) == (68.0, 88.0)
    assert by_start[1].status == "pending"
    assert backend.calls == 2


@pytest.mark.asyncio
async def test_invalid_slice_range_is_isolated(cache: TranscriptCache) -> None:
    source = LocalAudio(data=make_wav_bytes(30.0))
    anchors = [Anchor(audio_id="ep1", timestamp=20.0), Anchor(audio_id="ep1", timestamp=300.0)]

    hotzones = await _pipeline(cache, FakeBackend()).process(anchors, audio_source=source)

    by_start = sorted(hotzones, key=lambda hz: hz.start_time)
    assert by_start[0].transcript_snippet == "speech 1"
    assert by_start[1].transcript_snippet == PROCESSING_FAILED_SNIPPET


@pytest.mark.asyncio
async def test_context_snippet_is_replaced_by_transcription(cache: TranscriptCache) -> None:
    backend = FakeBackend()
    transcript = [TranscriptSegment(audio_id="ep1", text="Known context.", start_time=40.0, end_time=50.0)]

    hotzones = await _pipeline(cache, backend).process(
        [Anchor(audio_id="ep1", timestamp=50.0)],
        transcript,
        LocalAudio(data=make_wav_bytes(120.0)),
    )

    assert hotzones[0].transcript_snippet == "speech 1"
    assert backend.calls == 1


@pytest.mark.asyncio
async def test_context_snippet_does_not_hide_slice_failure(cache: TranscriptCache) -> None:
    backend = FakeBackend()
    transcript = [TranscriptSegment(audio_id="ep1", text="Late remark.", start_time=290.0, end_time=295.0)]

    hotzones = await _pipeline(cache, backend).process(
        [Anchor(audio_id="ep1", timestamp=300.0)],
        transcript,
        LocalAudio(data=make_wav_bytes(120.0)),
    )

    assert hotzones[0].transcript_snippet == PROCESSING_FAILED_SNIPPET
    assert (hotzones[0].start_time, hotzones[0].end_time) == (288.0, 308.0)
    assert backend.calls == 0


def test_anchors_from_different_recordings_are_rejected(cache: TranscriptCache) -> None:
    pipeline = _pipeline(cache, FakeBackend())

    with pytest.raises(ValueError, match="one recording"):
        pipeline.build_intervals(
            [Anchor(audio_id="ep1", timestamp=10.0), Anchor(audio_id="ep2", timestamp=10.0)]
        )


@pytest.mark.asyncio
async def test_close_anchors_end_to_end_yield_single_hotzone(cache: TranscriptCache) -> None:
    backend = FakeBackend()
    anchors = [Anchor(audio_id="ep1", timestamp=54.0), Anchor(audio_id="ep1", timestamp=50.0)]

    hotzones = await _pipeline(cache, backend).process(
        anchors, audio_source=LocalAudio(data=make_wav_bytes(120.0))
    )

    assert len(hotzones) == 1
    assert backend.calls == 1
    actions = [item.action for item in hotzones[0].metadata.user_adjustment_history]
    assert actions == ["merge", "shrink"]
