from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from hotzone.audio.ffmpeg import get_ffmpeg_version, project_ffmpeg_candidates, resolve_ffmpeg_command
from hotzone.config import Settings


@dataclass(slots=True)
class DoctorCheck:
    name: str
    status: str
    detail: str


def _check_ffmpeg(settings: Settings) -> DoctorCheck:
    if settings.ffmpeg_path is not None and not settings.ffmpeg_path.exists():
        return DoctorCheck(
            "ffmpeg",
            "fail",
            f"Configured HOTZONE_FFMPEG_PATH does not exist: {settings.ffmpeg_path}",
        )

    version = get_ffmpeg_version(settings.ffmpeg_path)
    if version:
        return DoctorCheck("ffmpeg", "ok", version)

    local_candidates = ", ".join(str(path) for path in project_ffmpeg_candidates())
    command = resolve_ffmpeg_command(settings.ffmpeg_path)
    return DoctorCheck(
        "ffmpeg",
        "warn",
        f"ffmpeg not found (tried '{command}'; candidates: {local_candidates}). "
        "Only PCM WAV sources can be sliced.",
    )


def _check_db(settings: Settings) -> DoctorCheck:
    try:
        settings.ensure_dirs()
        with sqlite3.connect(settings.db_path) as conn:
            conn.execute("SELECT 1")
        return DoctorCheck("Database", "ok", f"SQLite writable at {settings.db_path}")
    except (OSError, sqlite3.Error) as exc:  # pragma: no cover - environment dependent
        return DoctorCheck("Database", "fail", f"Cannot initialize SQLite at {settings.db_path}: {exc}")


def _check_api_key(settings: Settings) -> DoctorCheck:
    if not settings.transcription_api_key:
        return DoctorCheck(
            "Transcription API",
            "fail",
            "No HOTZONE_TRANSCRIPTION_API_KEY set. Every hotzone will report a processing failure.",
        )
    return DoctorCheck(
        "Transcription API",
        "ok",
        f"{settings.transcription_model} via {settings.transcription_api_url}",
    )


def run_doctor(settings: Settings) -> list[DoctorCheck]:
    return [_check_ffmpeg(settings), _check_db(settings), _check_api_key(settings)]
