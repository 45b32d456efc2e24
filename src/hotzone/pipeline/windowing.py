from __future__ import annotations

from typing import Sequence

from hotzone.models import PENDING_SNIPPET, Anchor, Hotzone, HotzoneMetadata, TranscriptSegment

REACTION_OFFSET_S = 2.0
WINDOW_HALF_WIDTH_S = 10.0
DEFAULT_CONFIDENCE = 0.8


def mechanical_window(
    timestamp: float,
    *,
    reaction_offset_s: float = REACTION_OFFSET_S,
    half_width_s: float = WINDOW_HALF_WIDTH_S,
) -> tuple[float, float]:
    """Fixed window around the anchor, shifted back for listener reaction time."""

    center = max(0.0, timestamp - reaction_offset_s)
    return max(0.0, center - half_width_s), center + half_width_s


def window_anchor(
    anchor: Anchor,
    transcript: Sequence[TranscriptSegment] = (),
    *,
    reaction_offset_s: float = REACTION_OFFSET_S,
    half_width_s: float = WINDOW_HALF_WIDTH_S,
    confidence: float = DEFAULT_CONFIDENCE,
) -> Hotzone:
    """Turn one anchor into a candidate hotzone.

    When transcript sentences overlap the mechanical window, the window is widened
    to cover them whole and their text becomes the snippet. The window never shrinks.
    """

    start, end = mechanical_window(
        anchor.timestamp,
        reaction_offset_s=reaction_offset_s,
        half_width_s=half_width_s,
    )

    overlapping = [
        segment
        for segment in transcript
        if segment.audio_id == anchor.audio_id and segment.overlaps(start, end)
    ]
    if overlapping:
        start = min(start, min(segment.start_time for segment in overlapping))
        end = max(end, max(segment.end_time for segment in overlapping))

    snippet = " ".join(segment.text.strip() for segment in overlapping if segment.text.strip())

    return Hotzone(
        audio_id=anchor.audio_id,
        start_time=start,
        end_time=end,
        transcript_snippet=snippet or PENDING_SNIPPET,
        source=anchor.source,
        status="pending",
        metadata=HotzoneMetadata(confidence=confidence),
    )
