from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

TRANSCRIPTION_RESPONSE_FORMATS: tuple[str, ...] = ("verbose_json", "text")


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    data_dir: Path = Field(default_factory=lambda: Path.home() / ".hotzone")
    temp_dir: Path | None = None
    db_filename: str = "hotzone.db"
    ffmpeg_path: Path | None = None

    transcription_api_url: str = "https://api.groq.com/openai/v1/audio/transcriptions"
    transcription_api_key: str | None = None
    transcription_model: str = "whisper-large-v3"
    transcription_response_format: str = "verbose_json"
    transcription_timeout_s: float = 60.0
    fetch_timeout_s: float = 60.0

    reaction_offset_s: float = 2.0
    window_half_width_s: float = 10.0
    merge_gap_tolerance_s: float = 2.0
    cache_tolerance_s: float = 1.0
    remote_bitrate_bytes_per_s: int = 24 * 1024
    remote_buffer_s: float = 10.0
    default_confidence: float = Field(default=0.8, ge=0.0, le=1.0)

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="HOTZONE_", extra="ignore")

    @model_validator(mode="after")
    def _derive_paths(self) -> "Settings":
        if "temp_dir" not in self.model_fields_set or self.temp_dir is None:
            self.temp_dir = self.data_dir / "tmp"
        fmt = self.transcription_response_format.strip().lower()
        if fmt not in TRANSCRIPTION_RESPONSE_FORMATS:
            allowed = ", ".join(TRANSCRIPTION_RESPONSE_FORMATS)
            raise ValueError(f"Unsupported transcription response format '{fmt}'. Allowed: {allowed}")
        self.transcription_response_format = fmt
        return self

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_filename

    def ensure_dirs(self) -> None:
        for path in (self.data_dir, self.temp_dir):
            path.mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
