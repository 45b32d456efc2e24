from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from pathlib import Path

import httpx

from hotzone.audio.ffmpeg import decode_audio
from hotzone.audio.pcm import PcmAudio, encode_wav, slice_pcm
from hotzone.errors import DecodeError, FetchError, InvalidRange
from hotzone.models import LocalAudio, RemoteAudio

logger = logging.getLogger(__name__)

BITRATE_ESTIMATE_BYTES_PER_S = 24 * 1024
BUFFER_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class ByteRange:
    start: int
    end: int

    @property
    def header(self) -> str:
        return f"bytes={self.start}-{self.end}"


def estimate_byte_range(
    start_s: float,
    end_s: float,
    *,
    bitrate_bytes_per_s: int = BITRATE_ESTIMATE_BYTES_PER_S,
    buffer_s: float = BUFFER_SECONDS,
) -> ByteRange:
    """Over-estimate the byte span holding [start_s, end_s] of a compressed stream."""

    if end_s <= start_s:
        raise InvalidRange(f"Invalid time range [{start_s}, {end_s}]")
    start_byte = max(0, math.floor((start_s - buffer_s) * bitrate_bytes_per_s))
    end_byte = math.floor((end_s + buffer_s) * bitrate_bytes_per_s)
    return ByteRange(start=start_byte, end=end_byte)


class AudioSlicer:
    """Produce 16-bit PCM WAV segments from local bytes or remote URLs."""

    def __init__(
        self,
        *,
        ffmpeg_path: Path | None = None,
        temp_dir: Path | None = None,
        bitrate_bytes_per_s: int = BITRATE_ESTIMATE_BYTES_PER_S,
        buffer_s: float = BUFFER_SECONDS,
        fetch_timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.ffmpeg_path = ffmpeg_path
        self.temp_dir = temp_dir
        self.bitrate_bytes_per_s = bitrate_bytes_per_s
        self.buffer_s = buffer_s
        self.fetch_timeout = fetch_timeout
        self._http = client

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.fetch_timeout, follow_redirects=True)
        return self._http

    def _decode(self, data: bytes) -> PcmAudio:
        return decode_audio(data, ffmpeg_path=self.ffmpeg_path, temp_dir=self.temp_dir)

    def slice_local(self, data: bytes, start_s: float, end_s: float) -> bytes:
        """Blocking decode + slice + encode; run off the event loop."""

        audio = self._decode(data)
        return encode_wav(slice_pcm(audio, start_s, end_s))

    def _slice_partial(self, chunk: bytes, start_s: float, end_s: float) -> bytes | None:
        try:
            audio = self._decode(chunk)
        except DecodeError as exc:
            logger.debug("Partial chunk undecodable: %s", exc)
            return None
        if audio.duration < end_s:
            return None
        return encode_wav(slice_pcm(audio, start_s, end_s))

    async def _get(self, url: str, headers: dict[str, str] | None = None) -> httpx.Response:
        http = self._get_http()
        try:
            return await http.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise FetchError(f"Failed to fetch {url}: {exc}") from exc

    async def _download(self, url: str) -> bytes:
        response = await self._get(url)
        if response.status_code != 200:
            raise FetchError(f"Failed to fetch {url}: HTTP {response.status_code}")
        return response.content

    async def slice_remote(self, url: str, start_s: float, end_s: float) -> bytes:
        byte_range = estimate_byte_range(
            start_s,
            end_s,
            bitrate_bytes_per_s=self.bitrate_bytes_per_s,
            buffer_s=self.buffer_s,
        )
        logger.info(
            "Fetching bytes %d-%d for time %.2f-%.2f from %s",
            byte_range.start,
            byte_range.end,
            start_s,
            end_s,
            url,
        )
        response = await self._get(url, headers={"Range": byte_range.header})

        if response.status_code == 200:
            # Server ignored the range header; the body is the whole resource.
            return await asyncio.to_thread(self.slice_local, response.content, start_s, end_s)

        if response.status_code == 206:
            if byte_range.start == 0:
                sliced = await asyncio.to_thread(self._slice_partial, response.content, start_s, end_s)
                if sliced is not None:
                    return sliced
            # Mid-stream byte offsets carry no container header and no reliable time mapping.
            logger.warning("Partial chunk unusable for %s; downloading full resource", url)
        else:
            # e.g. 416 when the estimated start lies past the end of a low-bitrate file.
            logger.warning(
                "Range request for %s answered HTTP %d; downloading full resource",
                url,
                response.status_code,
            )

        full = await self._download(url)
        return await asyncio.to_thread(self.slice_local, full, start_s, end_s)

    async def slice(self, source: LocalAudio | RemoteAudio, start_s: float, end_s: float) -> bytes:
        if isinstance(source, LocalAudio):
            return await asyncio.to_thread(self.slice_local, source.data, start_s, end_s)
        if isinstance(source, RemoteAudio):
            return await self.slice_remote(source.url, start_s, end_s)
        raise TypeError(f"Unsupported audio source: {type(source).__name__}")

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
