"""
Main CLI interface for chunk-scribe.

This module provides the Typer-based command-line interface with commands for:
- Chunked transcription of long audio files with speaker labeling
- Dry-run chunk planning without any API calls
"""

import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import pyperclip
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .core.config import ConfigError, build_client, config, load_project_env
from .core.labeler import LabelingError, SpeakerLabeler
from .core.media import FfmpegToolkit, MediaError
from .core.pipeline import PipelineOptions, TranscriptionPipeline
from .core.progress import reporter
from .core.speech import TranscriptionClient, TranscriptionError, validate_audio_format

app = typer.Typer(
    name="chunk-scribe",
    help="Split long audio at silences, transcribe each chunk with Whisper and label speakers with a chat model",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

# stdout carries only the transcript; all diagnostics go to stderr
console = Console(stderr=True)

FATAL_ERRORS = (ConfigError, MediaError, TranscriptionError, LabelingError)


def _setup_logging(debug: bool) -> None:
    """Route library logging through rich on stderr."""
    if debug:
        os.environ["CS_DEBUG"] = "1"
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )


def _check_input(path: str) -> str:
    """Resolve the input file or raise ConfigError if it cannot be read."""
    audio_path = Path(path)
    if not audio_path.is_file():
        raise ConfigError(f"File not found: {path}")
    if not os.access(audio_path, os.R_OK):
        raise ConfigError(f"File is not readable: {path}")
    if not validate_audio_format(path):
        logger.warning(f"Unusual audio extension {audio_path.suffix!r}; chunks keep the source container")
    return str(audio_path.resolve())


@app.command()
def transcribe(
    file: str = typer.Argument(..., help="Path to the audio file"),
    max_size_mb: float = typer.Option(20.0, "--max-size-mb", "-m", min=0.1, help="Approx max chunk size in MiB"),
    threshold: float = typer.Option(-30.0, "--threshold", "-t", help="Silence threshold in dB"),
    duration: float = typer.Option(0.5, "--duration", "-d", min=0.01, help="Minimum silence duration in seconds"),
    speakers: Optional[List[str]] = typer.Option(None, "--speaker", "-s", help="Known speaker name (repeatable, default from LABEL_SPEAKERS)"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write the labeled transcript to this file instead of stdout"),
    raw_output: Optional[str] = typer.Option(None, "--raw-output", help="Also write the unlabeled transcript to this file"),
    copy: bool = typer.Option(False, "--copy", help="Copy the final transcript to the clipboard"),
    fallback_raw: bool = typer.Option(False, "--fallback-raw", help="Emit the raw transcript if speaker labeling fails"),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging and JSON debug records under .chunk_scribe/debug"),
):
    """
    Transcribe an audio file chunk by chunk and label its speakers.

    Examples:
        chunk-scribe transcribe talk.mp3
        chunk-scribe transcribe talk.mp3 -m 10 -t -35 -d 0.8 --speaker DHH
        chunk-scribe transcribe interview.m4a -s Alice -s Bob -o interview.txt
    """
    _setup_logging(debug)
    try:
        with reporter.initialize(console, "Validating configuration…"):
            # Credential first: nothing touches the media before this passes
            load_project_env()
            client = build_client(config)

            toolkit = FfmpegToolkit(timeout=config.ffmpeg_timeout)
            toolkit.ensure_available()

            reporter.step("Checking audio file…")
            source = _check_input(file)

            pipeline = TranscriptionPipeline(
                toolkit=toolkit,
                transcriber=TranscriptionClient(client, model=config.asr_model),
                labeler=SpeakerLabeler(
                    client,
                    model=config.label_model,
                    speakers=speakers or config.speakers,
                    temperature=config.model_temperature,
                    is_reasoning_model=config.is_reasoning_model,
                ),
                options=PipelineOptions(
                    max_chunk_mib=max_size_mb,
                    threshold_db=threshold,
                    min_silence=duration,
                    fallback_raw=fallback_raw,
                ),
            )
            result = pipeline.run(source)
    except FATAL_ERRORS as e:
        console.print(f"[bold red]{_error_title(e)}:[/bold red] {escape(str(e))}", highlight=False)
        sys.exit(1)
    except Exception as e:
        console.print(f"[bold red]Unexpected Error:[/bold red] {escape(str(e))}", highlight=False)
        sys.exit(1)
    finally:
        reporter.reset()

    if result.silence_scan_degraded:
        console.print("[yellow]Warning:[/yellow] silence detection failed; the whole file was sent as a single unsnapped chunk", soft_wrap=True)
    if result.labeling_degraded:
        console.print("[yellow]Warning:[/yellow] speaker labeling failed; output is the unlabeled transcript")

    if raw_output:
        Path(raw_output).write_text(result.raw_transcript + "\n", encoding="utf-8")
        console.print(f"[dim]Raw transcript written to {raw_output}[/dim]")

    if output:
        Path(output).write_text(result.labeled_transcript + "\n", encoding="utf-8")
        console.print(f"[dim]Labeled transcript written to {output}[/dim]")
    else:
        typer.echo(result.labeled_transcript)

    if copy:
        try:
            pyperclip.copy(result.labeled_transcript)
            console.print("[dim]Copied to clipboard[/dim]")
        except pyperclip.PyperclipException as e:
            console.print(f"[yellow]Warning:[/yellow] clipboard unavailable: {escape(str(e))}")


@app.command()
def plan(
    file: str = typer.Argument(..., help="Path to the audio file"),
    max_size_mb: float = typer.Option(20.0, "--max-size-mb", "-m", min=0.1, help="Approx max chunk size in MiB"),
    threshold: float = typer.Option(-30.0, "--threshold", "-t", help="Silence threshold in dB"),
    duration: float = typer.Option(0.5, "--duration", "-d", min=0.01, help="Minimum silence duration in seconds"),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging and JSON debug records under .chunk_scribe/debug"),
):
    """
    Show where the audio would be cut, without calling any API.

    Examples:
        chunk-scribe plan talk.mp3
        chunk-scribe plan talk.mp3 -m 5 -d 1.0
    """
    _setup_logging(debug)
    try:
        with reporter.initialize(console, "Checking tools…"):
            load_project_env()
            toolkit = FfmpegToolkit(timeout=config.ffmpeg_timeout)
            toolkit.ensure_available()
            source = _check_input(file)

            pipeline = TranscriptionPipeline(
                toolkit=toolkit,
                options=PipelineOptions(max_chunk_mib=max_size_mb, threshold_db=threshold, min_silence=duration),
            )
            descriptor, chunk_plan, degraded = pipeline.plan(source)
            reporter.complete_step()
    except FATAL_ERRORS as e:
        console.print(f"[bold red]{_error_title(e)}:[/bold red] {escape(str(e))}", highlight=False)
        sys.exit(1)
    except Exception as e:
        console.print(f"[bold red]Unexpected Error:[/bold red] {escape(str(e))}", highlight=False)
        sys.exit(1)
    finally:
        reporter.reset()

    table = Table(title=f"Chunk plan for {Path(descriptor.path).name}")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Start (s)", justify="right")
    table.add_column("End (s)", justify="right")
    table.add_column("Length (s)", justify="right")
    for span in chunk_plan.spans:
        table.add_row(str(span.index), f"{span.start:.2f}", f"{span.end:.2f}", f"{span.duration:.2f}")

    out = Console()
    out.print(table)
    out.print(
        f"{descriptor.size_mib:.1f} MiB, {descriptor.duration:.1f}s: "
        f"{chunk_plan.requested_chunks} chunk(s) requested, {len(chunk_plan)} planned"
    )
    if degraded:
        console.print("[yellow]Warning:[/yellow] silence detection failed; the whole file would be sent as a single unsnapped chunk", soft_wrap=True)


def _error_title(error: Exception) -> str:
    if isinstance(error, ConfigError):
        return "Configuration Error"
    if isinstance(error, MediaError):
        return "Media Error"
    if isinstance(error, TranscriptionError):
        return "Transcription Error"
    return "Labeling Error"


if __name__ == "__main__":
    app()
