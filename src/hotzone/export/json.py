from __future__ import annotations

import json
from typing import Any, Sequence

from hotzone.models import Hotzone, TranscriptSegment


def build_payload(audio_id: str, hotzones: Sequence[Hotzone]) -> dict[str, Any]:
    return {
        "audio_id": audio_id,
        "hotzone_count": len(hotzones),
        "hotzones": [item.to_dict() for item in hotzones],
    }


def dumps_payload(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)


def load_transcript(raw: str, audio_id: str) -> list[TranscriptSegment]:
    """Parse a transcript fallback file: a list of {text, start_time, end_time} objects."""

    data = json.loads(raw)
    if isinstance(data, dict):
        data = data.get("segments", [])
    if not isinstance(data, list):
        raise ValueError("Transcript file must contain a list of segments.")
    segments: list[TranscriptSegment] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        segments.append(
            TranscriptSegment(
                audio_id=str(item.get("audio_id", audio_id)),
                text=str(item.get("text", "")),
                start_time=float(item.get("start_time", item.get("start", 0.0))),
                end_time=float(item.get("end_time", item.get("end", 0.0))),
            )
        )
    return segments
