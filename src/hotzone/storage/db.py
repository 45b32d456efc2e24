from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Sequence

from hotzone.asr.base import WordTimestamp
from hotzone.errors import CacheWriteError
from hotzone.models import (
    Anchor,
    Hotzone,
    metadata_to_dict,
    words_from_list,
    words_to_list,
)
from hotzone.storage.models import CachedTranscript


class HotzoneDB:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _session(self):
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self) -> None:
        with self._session() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS transcripts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    audio_id TEXT NOT NULL,
                    start_time REAL NOT NULL,
                    end_time REAL NOT NULL,
                    text TEXT NOT NULL,
                    words_json TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_transcripts_range "
                "ON transcripts(audio_id, start_time, end_time)"
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS hotzones (
                    id TEXT PRIMARY KEY,
                    audio_id TEXT NOT NULL,
                    start_time REAL NOT NULL,
                    end_time REAL NOT NULL,
                    transcript_snippet TEXT NOT NULL,
                    source TEXT NOT NULL,
                    status TEXT NOT NULL,
                    metadata_json TEXT NOT NULL,
                    words_json TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_hotzones_audio ON hotzones(audio_id, start_time)")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS anchors (
                    id TEXT PRIMARY KEY,
                    audio_id TEXT NOT NULL,
                    timestamp REAL NOT NULL,
                    source TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(tz=timezone.utc).replace(microsecond=0).isoformat()

    def find_transcripts(self, audio_id: str, start_time: float, end_time: float) -> list[CachedTranscript]:
        """Return cached transcripts whose range overlaps [start_time, end_time]."""

        with self._session() as conn:
            rows = conn.execute(
                """
                SELECT * FROM transcripts
                WHERE audio_id = ? AND start_time <= ? AND end_time >= ?
                ORDER BY id ASC
                """,
                (audio_id, end_time, start_time),
            ).fetchall()
        return [
            CachedTranscript(
                id=int(row["id"]),
                audio_id=str(row["audio_id"]),
                start_time=float(row["start_time"]),
                end_time=float(row["end_time"]),
                text=str(row["text"]),
                words=words_from_list(json.loads(row["words_json"])),
                created_at=str(row["created_at"]),
            )
            for row in rows
        ]

    def insert_transcript(
        self,
        *,
        audio_id: str,
        start_time: float,
        end_time: float,
        text: str,
        words: Sequence[WordTimestamp],
    ) -> int:
        try:
            with self._session() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO transcripts(audio_id, start_time, end_time, text, words_json, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        audio_id,
                        start_time,
                        end_time,
                        text,
                        json.dumps(words_to_list(tuple(words))),
                        self._now_iso(),
                    ),
                )
                return int(cursor.lastrowid)
        except sqlite3.Error as exc:
            raise CacheWriteError(f"Cannot cache transcript for {audio_id}: {exc}") from exc

    def save_hotzones(self, hotzones: Iterable[Hotzone]) -> None:
        with self._session() as conn:
            for hotzone in hotzones:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO hotzones(
                        id, audio_id, start_time, end_time, transcript_snippet,
                        source, status, metadata_json, words_json, created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        hotzone.id,
                        hotzone.audio_id,
                        hotzone.start_time,
                        hotzone.end_time,
                        hotzone.transcript_snippet,
                        hotzone.source,
                        hotzone.status,
                        json.dumps(metadata_to_dict(hotzone.metadata)),
                        json.dumps(words_to_list(hotzone.words)),
                        hotzone.created_at,
                    ),
                )

    def get_hotzones(self, audio_id: str) -> list[Hotzone]:
        with self._session() as conn:
            rows = conn.execute(
                "SELECT * FROM hotzones WHERE audio_id = ? ORDER BY start_time ASC",
                (audio_id,),
            ).fetchall()
        return [
            Hotzone.from_dict(
                {
                    **dict(row),
                    "metadata": json.loads(row["metadata_json"]),
                    "words": json.loads(row["words_json"]),
                }
            )
            for row in rows
        ]

    def save_anchor(self, anchor: Anchor) -> None:
        with self._session() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO anchors(id, audio_id, timestamp, source, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (anchor.id, anchor.audio_id, anchor.timestamp, anchor.source, anchor.created_at),
            )

    def get_anchors(self, audio_id: str) -> list[Anchor]:
        with self._session() as conn:
            rows = conn.execute(
                "SELECT * FROM anchors WHERE audio_id = ? ORDER BY timestamp ASC",
                (audio_id,),
            ).fetchall()
        return [
            Anchor(
                id=str(row["id"]),
                audio_id=str(row["audio_id"]),
                timestamp=float(row["timestamp"]),
                source=row["source"],
                created_at=str(row["created_at"]),
            )
            for row in rows
        ]
