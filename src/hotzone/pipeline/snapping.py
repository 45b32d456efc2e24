from __future__ import annotations

from typing import Sequence

from hotzone.asr.base import WordTimestamp
from hotzone.models import Hotzone


def snap_to_words(
    hotzone: Hotzone,
    words: Sequence[WordTimestamp],
    segment_start: float,
    text: str,
) -> Hotzone:
    """Tighten bounds to the first and last spoken word.

    ``words`` are relative to the audio segment that began at ``segment_start``.
    Only trims leading and trailing silence; a sentence cut at the slice edge is
    not re-expanded.
    """

    snapped = hotzone.with_snippet(text)
    if not words:
        return snapped

    absolute = tuple(word.shifted(segment_start) for word in words)
    new_start = max(0.0, absolute[0].start)
    new_end = absolute[-1].end
    if new_end <= new_start:
        return snapped.with_words(absolute)

    if (new_start, new_end) != (hotzone.start_time, hotzone.end_time):
        shrunk = new_start >= hotzone.start_time and new_end <= hotzone.end_time
        snapped = snapped.with_bounds(new_start, new_end).with_adjustment(
            "shrink" if shrunk else "expand"
        )
    return snapped.with_words(absolute)
