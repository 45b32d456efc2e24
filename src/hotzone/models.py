from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Literal, Union

from hotzone.asr.base import WordTimestamp
from hotzone.errors import InvalidRange

AnchorSource = Literal["manual", "auto"]
HotzoneStatus = Literal["pending", "reviewed", "archived"]
AdjustmentAction = Literal["expand", "shrink", "merge"]

PENDING_SNIPPET = "Processing..."
AUDIO_MISSING_SNIPPET = "[audio source missing]"
PROCESSING_FAILED_SNIPPET = "[processing failed]"


def now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True, slots=True)
class Anchor:
    audio_id: str
    timestamp: float
    source: AnchorSource = "manual"
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=now_iso)

    def __post_init__(self) -> None:
        if self.timestamp < 0:
            raise InvalidRange(f"Anchor timestamp must be >= 0, got {self.timestamp}")


@dataclass(frozen=True, slots=True)
class TranscriptSegment:
    """A pre-existing transcript sentence used when no audio can be transcribed."""

    audio_id: str
    text: str
    start_time: float
    end_time: float
    id: str = field(default_factory=new_id)

    def overlaps(self, start: float, end: float) -> bool:
        return self.end_time > start and self.start_time < end


@dataclass(frozen=True, slots=True)
class Adjustment:
    action: AdjustmentAction
    timestamp: str


@dataclass(frozen=True, slots=True)
class HotzoneMetadata:
    confidence: float = 0.8
    difficulty_score: float | None = None
    user_adjustment_history: tuple[Adjustment, ...] = ()

    def appended(self, action: AdjustmentAction, timestamp: str | None = None) -> "HotzoneMetadata":
        entry = Adjustment(action=action, timestamp=timestamp or now_iso())
        return replace(self, user_adjustment_history=(*self.user_adjustment_history, entry))


@dataclass(frozen=True, slots=True)
class Hotzone:
    audio_id: str
    start_time: float
    end_time: float
    transcript_snippet: str = PENDING_SNIPPET
    source: AnchorSource = "manual"
    status: HotzoneStatus = "pending"
    metadata: HotzoneMetadata = field(default_factory=HotzoneMetadata)
    words: tuple[WordTimestamp, ...] = ()
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=now_iso)

    def __post_init__(self) -> None:
        if not 0 <= self.start_time < self.end_time:
            raise InvalidRange(
                f"Hotzone bounds must satisfy 0 <= start < end, got [{self.start_time}, {self.end_time}]"
            )

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def is_pending_text(self) -> bool:
        return not self.transcript_snippet or self.transcript_snippet == PENDING_SNIPPET

    def with_bounds(self, start_time: float, end_time: float) -> "Hotzone":
        return replace(self, start_time=start_time, end_time=end_time)

    def with_snippet(self, text: str) -> "Hotzone":
        return replace(self, transcript_snippet=text)

    def with_adjustment(self, action: AdjustmentAction, timestamp: str | None = None) -> "Hotzone":
        return replace(self, metadata=self.metadata.appended(action, timestamp))

    def with_words(self, words: tuple[WordTimestamp, ...]) -> "Hotzone":
        return replace(self, words=words)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "audio_id": self.audio_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "transcript_snippet": self.transcript_snippet,
            "source": self.source,
            "status": self.status,
            "metadata": metadata_to_dict(self.metadata),
            "words": words_to_list(self.words),
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Hotzone":
        return cls(
            id=str(payload["id"]),
            audio_id=str(payload["audio_id"]),
            start_time=float(payload["start_time"]),
            end_time=float(payload["end_time"]),
            transcript_snippet=str(payload.get("transcript_snippet") or PENDING_SNIPPET),
            source=payload.get("source", "manual"),
            status=payload.get("status", "pending"),
            metadata=metadata_from_dict(payload.get("metadata") or {}),
            words=words_from_list(payload.get("words") or []),
            created_at=str(payload.get("created_at") or now_iso()),
        )


def metadata_to_dict(metadata: HotzoneMetadata) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "confidence": metadata.confidence,
        "user_adjustment_history": [
            {"action": item.action, "timestamp": item.timestamp}
            for item in metadata.user_adjustment_history
        ],
    }
    if metadata.difficulty_score is not None:
        payload["difficulty_score"] = metadata.difficulty_score
    return payload


def metadata_from_dict(payload: dict[str, Any]) -> HotzoneMetadata:
    difficulty = payload.get("difficulty_score")
    return HotzoneMetadata(
        confidence=float(payload.get("confidence", 0.8)),
        difficulty_score=float(difficulty) if difficulty is not None else None,
        user_adjustment_history=tuple(
            Adjustment(action=item["action"], timestamp=str(item["timestamp"]))
            for item in payload.get("user_adjustment_history") or []
        ),
    )


def words_to_list(words: tuple[WordTimestamp, ...]) -> list[dict[str, Any]]:
    return [{"word": item.word, "start": item.start, "end": item.end} for item in words]


def words_from_list(payload: list[dict[str, Any]]) -> tuple[WordTimestamp, ...]:
    return tuple(
        WordTimestamp(word=str(item["word"]), start=float(item["start"]), end=float(item["end"]))
        for item in payload
    )


@dataclass(frozen=True, slots=True)
class LocalAudio:
    data: bytes = field(repr=False)
    name: str = "audio"


@dataclass(frozen=True, slots=True)
class RemoteAudio:
    url: str


AudioSource = Union[LocalAudio, RemoteAudio, None]
