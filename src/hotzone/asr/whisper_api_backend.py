"""Transcription adapter for OpenAI-compatible Whisper HTTP endpoints (Groq, OpenAI)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from hotzone.asr.base import TranscriptionResult, WordTimestamp
from hotzone.errors import TranscriptionError

logger = logging.getLogger(__name__)


class WhisperAPIBackend:
    """Posts WAV segments to a hosted Whisper endpoint and parses word timings."""

    def __init__(
        self,
        api_url: str,
        *,
        api_key: str | None,
        model: str = "whisper-large-v3",
        response_format: str = "verbose_json",
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.response_format = response_format
        self.timeout = timeout
        self._http = client

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    def _form_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "model": self.model,
            "response_format": self.response_format,
        }
        if self.response_format == "verbose_json":
            fields["timestamp_granularities[]"] = ["word", "segment"]
        return fields

    @staticmethod
    def _parse_words(raw_words: Any) -> tuple[WordTimestamp, ...]:
        if not isinstance(raw_words, list):
            return ()
        words: list[WordTimestamp] = []
        for item in raw_words:
            if not isinstance(item, dict):
                continue
            text = str(item.get("word", "")).strip()
            start = item.get("start")
            end = item.get("end")
            if not text or start is None or end is None:
                continue
            start_s = float(start)
            end_s = max(float(end), start_s)
            words.append(WordTimestamp(word=text, start=start_s, end=end_s))
        words.sort(key=lambda item: item.start)
        return tuple(words)

    def _parse_response(self, response: httpx.Response) -> TranscriptionResult:
        if self.response_format == "text":
            return TranscriptionResult(text=response.text.strip(), backend="whisper-api")

        try:
            payload = response.json()
        except ValueError as exc:
            raise TranscriptionError(f"Transcription API returned invalid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise TranscriptionError("Transcription API returned an unexpected payload shape.")

        return TranscriptionResult(
            text=str(payload.get("text", "")).strip(),
            words=self._parse_words(payload.get("words")),
            backend="whisper-api",
        )

    async def transcribe(self, audio: bytes, filename: str = "hotzone.wav") -> TranscriptionResult:
        if not self.api_key:
            raise TranscriptionError(
                "Missing transcription API key. Set HOTZONE_TRANSCRIPTION_API_KEY."
            )

        http = self._get_http()
        try:
            response = await http.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                data=self._form_fields(),
                files={"file": (filename, audio, "audio/wav")},
            )
        except httpx.HTTPError as exc:
            raise TranscriptionError(f"Transcription request failed: {exc}") from exc

        if not response.is_success:
            raise TranscriptionError(
                f"Transcription API error ({response.status_code}): {response.text}"
            )

        result = self._parse_response(response)
        logger.debug("Transcribed %d bytes into %d words", len(audio), len(result.words))
        return result

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
