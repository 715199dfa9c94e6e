"""
Command-line front end: transcribe local recordings or pasted transcripts
and export the result.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import pydantic
import typer

from consult_scribe.config import ExportFormat, settings
from consult_scribe.core.errors import ScribeError
from consult_scribe.core.logging import get_logger, setup_logging
from consult_scribe.models.requests import TranscriptionContext
from consult_scribe.models.transcript import Transcript, is_enhanced, load_transcript
from consult_scribe.services.export_service import write_exports
from consult_scribe.services.llm_service import build_demo_provider, build_text_provider
from consult_scribe.services.media_encoder import load_media_file
from consult_scribe.services.stt_service import TranscriptionService

logger = get_logger(__name__)

app = typer.Typer(help="Consultation transcript diarizer.")


def _build_service() -> TranscriptionService:
    return TranscriptionService(
        build_demo_provider(settings),
        temperature=settings.ingest_temperature,
        text_provider=build_text_provider(settings),
    )


def _progress(message: str) -> None:
    typer.echo(f"[info] {message}")


def _render(transcript: Transcript) -> None:
    typer.echo("")
    typer.echo(f"Patient ID: {transcript.patient_id} | Date: {transcript.consultation_date}")
    typer.echo("")

    if is_enhanced(transcript):
        mse = transcript.mental_status_exam
        typer.echo("Mental Status Exam Observations")
        typer.echo(f"  Appearance: {mse.appearance}")
        typer.echo(f"  Behavior:   {mse.behavior}")
        typer.echo(f"  Affect:     {mse.affect}")
        typer.echo(f"  Speech:     {mse.speech}")
        typer.echo("")
        if transcript.clinical_observations:
            typer.echo("Clinical Observations")
            for item in transcript.clinical_observations:
                typer.echo(f"  [{item.timestamp}] {item.observation}")
            typer.echo("")

    for entry in transcript.transcript:
        typer.echo(f"[{entry.timestamp}] {entry.speaker}: {entry.line}")


def _export(
    transcript: Transcript, out_dir: Optional[Path], fmt: ExportFormat, source: Optional[Path] = None
) -> None:
    paths = write_exports(transcript, out_dir or Path(settings.output_dir), fmt, source=source)
    for path in paths:
        typer.echo(f"Saved: {path}")


def _fail(exc: ScribeError) -> None:
    logger.error(f"{type(exc).__name__}: {exc.message}")
    typer.echo(f"Error: {exc.message}", err=True)
    raise typer.Exit(code=1)


@app.callback()
def main():
    setup_logging(settings)


@app.command("transcribe")
def transcribe(
    media_path: Path = typer.Argument(..., exists=True, file_okay=True, dir_okay=False, readable=True),
    patient_id: Optional[str] = typer.Option(None, help='Patient identifier; defaults to "UNKNOWN".'),
    date: Optional[str] = typer.Option(None, help="Consultation date YYYY-MM-DD; defaults to today."),
    mse: bool = typer.Option(True, "--mse/--no-mse", help="Include mental status exam observations."),
    fmt: ExportFormat = typer.Option(ExportFormat.BOTH, "--format", help="Export format."),
    out_dir: Optional[Path] = typer.Option(None, help="Export directory; defaults to OUTPUT_DIR."),
):
    """
    Transcribe an audio or video recording with the demo key and export it.
    """
    context = TranscriptionContext(patient_id=patient_id, consultation_date=date)
    try:
        _progress("Preparing media file...")
        media = load_media_file(media_path, settings.max_file_size_bytes)
        _progress(
            "Sending to AI for comprehensive analysis (including MSE)... This may take several minutes."
            if mse else "Sending to AI for transcription..."
        )
        transcript = asyncio.run(_build_service().transcribe(media, context, enhanced=mse))
        _progress("Processing AI response...")
    except ScribeError as exc:
        _fail(exc)

    _render(transcript)
    _export(transcript, out_dir, fmt)


@app.command("transcribe-text")
def transcribe_text(
    source: str = typer.Argument(..., help='Plain-text transcript file, or "-" for stdin.'),
    patient_id: Optional[str] = typer.Option(None),
    date: Optional[str] = typer.Option(None),
    fmt: ExportFormat = typer.Option(ExportFormat.BOTH, "--format"),
    out_dir: Optional[Path] = typer.Option(None),
):
    """
    Attribute speakers in a pasted transcript (Google Meet, Zoom, ...) and export it.
    """
    if source == "-":
        text = sys.stdin.read()
    else:
        try:
            text = Path(source).read_text(encoding="utf-8")
        except OSError as exc:
            typer.echo(f"Error: cannot read {source}: {exc}", err=True)
            raise typer.Exit(code=1)

    context = TranscriptionContext(patient_id=patient_id, consultation_date=date)
    try:
        _progress("Sending transcript to AI for speaker attribution...")
        transcript = asyncio.run(_build_service().transcribe_text(text, context))
    except ScribeError as exc:
        _fail(exc)

    _render(transcript)
    _export(transcript, out_dir, fmt)


@app.command("export")
def export(
    transcript_path: Path = typer.Argument(..., exists=True, file_okay=True, dir_okay=False, readable=True),
    fmt: ExportFormat = typer.Option(ExportFormat.TXT, "--format"),
    out_dir: Optional[Path] = typer.Option(None),
):
    """
    Re-export a saved JSON transcript.
    """
    try:
        payload = json.loads(transcript_path.read_text(encoding="utf-8"))
        transcript = load_transcript(payload)
    except (json.JSONDecodeError, pydantic.ValidationError, AttributeError) as exc:
        typer.echo(f"Error: {transcript_path} is not a valid transcript: {exc}", err=True)
        raise typer.Exit(code=1)

    _export(transcript, out_dir or transcript_path.parent, fmt, source=transcript_path)


@app.command("serve")
def serve(
    host: str = typer.Option(settings.api_host),
    port: int = typer.Option(settings.api_port),
):
    """
    Run the ingest service.
    """
    import uvicorn

    uvicorn.run("consult_scribe.main:app", host=host, port=port)


if __name__ == "__main__":
    app()
