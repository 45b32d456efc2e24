from __future__ import annotations

import pytest

from hotzone.cli import default_audio_id, resolve_audio_source
from hotzone.models import LocalAudio, RemoteAudio


def test_resolve_audio_source_remote() -> None:
    assert resolve_audio_source(" https://cdn.example.com/ep.mp3 ") == RemoteAudio(
        url="https://cdn.example.com/ep.mp3"
    )


def test_resolve_audio_source_none() -> None:
    assert resolve_audio_source("-") is None
    assert resolve_audio_source("") is None


def test_resolve_audio_source_local(tmp_path) -> None:
    path = tmp_path / "episode.wav"
    path.write_bytes(b"RIFFdata")

    source = resolve_audio_source(str(path))

    assert isinstance(source, LocalAudio)
    assert source.data == b"RIFFdata"
    assert source.name == "episode.wav"


def test_resolve_audio_source_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError, match="does not exist"):
        resolve_audio_source(str(tmp_path / "missing.mp3"))


def test_default_audio_id() -> None:
    assert default_audio_id("/podcasts/episode-12.mp3") == "episode-12"
    assert default_audio_id("https://cdn.example.com/ep.mp3") == "https://cdn.example.com/ep.mp3"
