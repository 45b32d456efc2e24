from __future__ import annotations

from pathlib import Path
from typing import Sequence

from hotzone.asr.base import TranscriptionBackend
from hotzone.asr.whisper_api_backend import WhisperAPIBackend
from hotzone.audio.slicer import AudioSlicer
from hotzone.config import Settings, get_settings
from hotzone.export import json as json_export
from hotzone.models import Anchor, AudioSource, Hotzone, TranscriptSegment
from hotzone.pipeline.orchestrator import HotzonePipeline
from hotzone.storage.cache import TranscriptCache
from hotzone.storage.db import HotzoneDB


class HotzoneService:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        backend: TranscriptionBackend | None = None,
        slicer: AudioSlicer | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.settings.ensure_dirs()
        self.db = HotzoneDB(self.settings.db_path)
        self.db.initialize()
        self.backend = backend or WhisperAPIBackend(
            self.settings.transcription_api_url,
            api_key=self.settings.transcription_api_key,
            model=self.settings.transcription_model,
            response_format=self.settings.transcription_response_format,
            timeout=self.settings.transcription_timeout_s,
        )
        self.slicer = slicer or AudioSlicer(
            ffmpeg_path=self.settings.ffmpeg_path,
            temp_dir=self.settings.temp_dir,
            bitrate_bytes_per_s=self.settings.remote_bitrate_bytes_per_s,
            buffer_s=self.settings.remote_buffer_s,
            fetch_timeout=self.settings.fetch_timeout_s,
        )
        self.cache = TranscriptCache(self.db, tolerance_s=self.settings.cache_tolerance_s)
        self.pipeline = HotzonePipeline.from_settings(
            self.settings,
            slicer=self.slicer,
            cache=self.cache,
            backend=self.backend,
        )

    async def process(
        self,
        anchors: Sequence[Anchor],
        *,
        audio_source: AudioSource = None,
        transcript: Sequence[TranscriptSegment] = (),
    ) -> list[Hotzone]:
        for anchor in anchors:
            self.db.save_anchor(anchor)
        hotzones = await self.pipeline.process(anchors, transcript, audio_source)
        self.db.save_hotzones(hotzones)
        return sorted(hotzones, key=lambda item: item.start_time)

    def list_hotzones(self, audio_id: str) -> list[Hotzone]:
        return self.db.get_hotzones(audio_id)

    def export_hotzones(self, audio_id: str, output_path: Path) -> Path:
        hotzones = self.db.get_hotzones(audio_id)
        if not hotzones:
            raise ValueError(f"No hotzones stored for audio: {audio_id}")
        payload = json_export.build_payload(audio_id, hotzones)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json_export.dumps_payload(payload), encoding="utf-8")
        return output_path

    async def aclose(self) -> None:
        for component in (self.backend, self.slicer):
            closer = getattr(component, "aclose", None)
            if closer is not None:
                await closer()
