from __future__ import annotations

from hotzone.asr.base import WordTimestamp
from hotzone.models import Anchor, Hotzone, HotzoneMetadata
from hotzone.storage.db import HotzoneDB


def test_hotzones_are_read_back_in_start_order(tmp_path) -> None:
    db = HotzoneDB(tmp_path / "hotzone.db")
    db.initialize()
    late = Hotzone(audio_id="ep1", start_time=90.0, end_time=110.0, transcript_snippet="late")
    early = (
        Hotzone(
            audio_id="ep1",
            start_time=10.0,
            end_time=30.0,
            transcript_snippet="early",
            metadata=HotzoneMetadata(confidence=0.6, difficulty_score=0.4),
            words=(WordTimestamp(word="early", start=10.5, end=11.0),),
        )
        .with_adjustment("merge", "2026-01-01T00:00:00+00:00")
    )
    other = Hotzone(audio_id="ep2", start_time=0.0, end_time=20.0)
    db.save_hotzones([late, early, other])

    stored = db.get_hotzones("ep1")

    assert [item.transcript_snippet for item in stored] == ["early", "late"]
    assert stored[0] == early


def test_saving_hotzone_twice_replaces_row(tmp_path) -> None:
    db = HotzoneDB(tmp_path / "hotzone.db")
    db.initialize()
    hotzone = Hotzone(audio_id="ep1", start_time=0.0, end_time=20.0)
    db.save_hotzones([hotzone])
    db.save_hotzones([hotzone.with_snippet("updated")])

    stored = db.get_hotzones("ep1")

    assert len(stored) == 1
    assert stored[0].transcript_snippet == "updated"


def test_anchors_round_trip(tmp_path) -> None:
    db = HotzoneDB(tmp_path / "hotzone.db")
    db.initialize()
    anchor = Anchor(audio_id="ep1", timestamp=42.0, source="auto")
    db.save_anchor(anchor)
    db.save_anchor(anchor)

    assert db.get_anchors("ep1") == [anchor]
