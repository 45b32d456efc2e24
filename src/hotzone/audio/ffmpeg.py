from __future__ import annotations

import os
import subprocess
import tempfile
from pathlib import Path

from hotzone.audio.pcm import PcmAudio, is_wav, read_wav
from hotzone.errors import DecodeError


class FfmpegError(DecodeError):
    """Raised when ffmpeg commands fail."""


def _ffmpeg_executable_name() -> str:
    return "ffmpeg.exe" if os.name == "nt" else "ffmpeg"


def project_ffmpeg_candidates() -> list[Path]:
    exe_name = _ffmpeg_executable_name()
    cwd = Path.cwd()
    return [
        cwd / "tools" / "ffmpeg" / "bin" / exe_name,
        cwd / "bin" / exe_name,
    ]


def resolve_ffmpeg_command(ffmpeg_path: Path | None = None) -> str:
    if ffmpeg_path is not None:
        return str(Path(ffmpeg_path).expanduser())

    for candidate in project_ffmpeg_candidates():
        if candidate.exists():
            return str(candidate)

    return _ffmpeg_executable_name()


def get_ffmpeg_version(ffmpeg_path: Path | None = None) -> str | None:
    command = resolve_ffmpeg_command(ffmpeg_path)
    try:
        completed = subprocess.run(
            [command, "-version"],
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError:
        return None
    if completed.returncode != 0:
        return None
    first_line = completed.stdout.splitlines()[0] if completed.stdout else "ffmpeg detected"
    return f"{first_line.strip()} (command: {command})"


def _run_ffmpeg(args: list[str], ffmpeg_path: Path | None = None) -> None:
    command = resolve_ffmpeg_command(ffmpeg_path)
    try:
        subprocess.run(
            [command, "-hide_banner", "-loglevel", "error", *args],
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise FfmpegError(
            f"ffmpeg not found (command: {command}). "
            "Install ffmpeg, place it under ./tools/ffmpeg/bin/, or set HOTZONE_FFMPEG_PATH."
        ) from exc
    except subprocess.CalledProcessError as exc:
        stderr = exc.stderr.strip() if exc.stderr else "Unknown ffmpeg error."
        raise FfmpegError(stderr) from exc


def convert_to_pcm16_wav(
    input_path: Path,
    output_path: Path,
    ffmpeg_path: Path | None = None,
) -> Path:
    """Re-encode any container to 16-bit PCM WAV keeping rate and channel layout."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    _run_ffmpeg(
        [
            "-y",
            "-i",
            str(input_path),
            "-vn",
            "-acodec",
            "pcm_s16le",
            "-f",
            "wav",
            str(output_path),
        ],
        ffmpeg_path=ffmpeg_path,
    )
    return output_path


def decode_audio(
    data: bytes,
    *,
    ffmpeg_path: Path | None = None,
    temp_dir: Path | None = None,
) -> PcmAudio:
    """Decode an in-memory audio resource into PCM samples.

    Integer PCM WAV is read in-process; every other container goes through ffmpeg.
    """

    if not data:
        raise DecodeError("Audio resource is empty.")
    if is_wav(data):
        try:
            return read_wav(data)
        except DecodeError:
            pass

    if temp_dir is not None:
        temp_dir.mkdir(parents=True, exist_ok=True)
    with tempfile.TemporaryDirectory(prefix="decode_", dir=temp_dir) as run_dir:
        source = Path(run_dir) / "source.bin"
        target = Path(run_dir) / "decoded.wav"
        source.write_bytes(data)
        convert_to_pcm16_wav(source, target, ffmpeg_path=ffmpeg_path)
        return read_wav(target.read_bytes())
