from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from hotzone.config import get_settings
from hotzone.doctor import run_doctor
from hotzone.errors import HotzoneError
from hotzone.export.json import load_transcript
from hotzone.models import Anchor, AudioSource, Hotzone, LocalAudio, RemoteAudio, TranscriptSegment
from hotzone.services import HotzoneService

app = typer.Typer(help="Hotzone - turn listener anchors into reviewable transcript windows")
console = Console()

ANCHOR_SOURCES = ("manual", "auto")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def resolve_audio_source(value: str) -> AudioSource:
    """Map the SOURCE argument to a local file, a remote URL, or no audio at all."""

    normalized = value.strip()
    if normalized in {"", "-"}:
        return None
    if normalized.lower().startswith(("http://", "https://")):
        return RemoteAudio(url=normalized)
    path = Path(normalized).expanduser()
    if not path.is_file():
        raise FileNotFoundError(f"Audio file does not exist: {path}")
    return LocalAudio(data=path.read_bytes(), name=path.name)


def default_audio_id(value: str) -> str:
    normalized = value.strip()
    if normalized.lower().startswith(("http://", "https://")):
        return normalized
    return Path(normalized).stem or "audio"


def _render_hotzones(title: str, hotzones: list[Hotzone]) -> None:
    table = Table(title=title)
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Status")
    table.add_column("Adjustments")
    table.add_column("Snippet")
    for hotzone in hotzones:
        history = ", ".join(item.action for item in hotzone.metadata.user_adjustment_history)
        table.add_row(
            f"{hotzone.start_time:.2f}",
            f"{hotzone.end_time:.2f}",
            hotzone.status,
            history or "-",
            hotzone.transcript_snippet,
        )
    console.print(table)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    configure_logging("DEBUG" if verbose else get_settings().log_level)


@app.command()
def doctor() -> None:
    """Check local runtime prerequisites."""

    checks = run_doctor(get_settings())

    table = Table(title="Hotzone doctor")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Detail")

    failed = False
    for check in checks:
        color = {"ok": "green", "warn": "yellow", "fail": "red"}.get(check.status, "white")
        table.add_row(check.name, f"[{color}]{check.status.upper()}[/{color}]", check.detail)
        if check.status == "fail":
            failed = True

    console.print(table)
    if failed:
        raise typer.Exit(code=1)


@app.command()
def process(
    source: str = typer.Argument(..., help="Local audio path, http(s) URL, or '-' for none"),
    anchor: list[float] = typer.Option(..., "--anchor", "-a", help="Anchor timestamp in seconds"),
    audio_id: str | None = typer.Option(None, "--audio-id", help="Recording identifier"),
    transcript: Path | None = typer.Option(
        None, "--transcript", exists=True, dir_okay=False, help="Fallback transcript JSON"
    ),
    anchor_source: str = typer.Option("manual", "--source", help="manual|auto"),
) -> None:
    """Derive hotzones for a set of anchors and store them."""

    if anchor_source not in ANCHOR_SOURCES:
        console.print(f"[red]process failed:[/red] --source must be one of {'|'.join(ANCHOR_SOURCES)}")
        raise typer.Exit(code=2)

    recording = audio_id or default_audio_id(source)
    try:
        audio_source = resolve_audio_source(source)
        segments = (
            load_transcript(transcript.read_text(encoding="utf-8"), recording)
            if transcript is not None
            else []
        )
        anchors = [Anchor(audio_id=recording, timestamp=value, source=anchor_source) for value in anchor]
        hotzones = asyncio.run(_process(anchors, audio_source, segments))
    except (HotzoneError, FileNotFoundError, ValueError) as exc:
        console.print(f"[red]process failed:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    _render_hotzones(f"Hotzones for {recording}", hotzones)


async def _process(
    anchors: list[Anchor],
    audio_source: AudioSource,
    segments: list[TranscriptSegment],
) -> list[Hotzone]:
    service = HotzoneService()
    try:
        return await service.process(anchors, audio_source=audio_source, transcript=segments)
    finally:
        await service.aclose()


@app.command("list")
def list_cmd(audio_id: str = typer.Argument(..., help="Recording identifier")) -> None:
    """Show stored hotzones for a recording."""

    hotzones = HotzoneService().list_hotzones(audio_id)
    if not hotzones:
        console.print("[yellow]No hotzones stored.[/yellow]")
        raise typer.Exit(code=0)
    _render_hotzones(f"Hotzones for {audio_id}", hotzones)


@app.command("export")
def export_cmd(
    audio_id: str = typer.Argument(..., help="Recording identifier"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Destination JSON file"),
) -> None:
    """Export stored hotzones as JSON."""

    service = HotzoneService()
    target = output or service.settings.data_dir / "exports" / f"{Path(audio_id).name or 'audio'}.json"
    try:
        written = service.export_hotzones(audio_id, target)
    except (ValueError, OSError) as exc:
        console.print(f"[red]export failed:[/red] {exc}")
        raise typer.Exit(code=2) from exc
    console.print(f"[green]Export written:[/green] {written}")


if __name__ == "__main__":
    app()
