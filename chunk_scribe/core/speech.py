"""
Speech-to-text functionality using OpenAI Whisper.

This module wraps OpenAI's transcription API and drives the sequential
extract -> transcribe -> delete loop over a chunk plan.
"""

import logging
from pathlib import Path
from typing import Any, Callable, List, Optional

from .media import MediaToolkit, chunk_artifact
from .progress import reporter
from .types import ChunkPlan, ChunkSpan, PipelineState, TranscriptSegment

logger = logging.getLogger(__name__)

# Whisper rejects uploads above 25MB
MAX_UPLOAD_BYTES = 25 * 1024 * 1024

SUPPORTED_EXTENSIONS = {".mp3", ".mp4", ".mpeg", ".mpga", ".m4a", ".wav", ".webm", ".ogg", ".flac"}


class TranscriptionError(Exception):
    """Raised when a chunk cannot be transcribed."""

    def __init__(self, message: str, span: Optional[ChunkSpan] = None):
        super().__init__(message)
        self.span = span


def validate_audio_format(path: str) -> bool:
    """
    Validate if the audio file format is accepted by the speech-to-text API.

    Args:
        path: Path to the audio file

    Returns:
        True if format is supported, False otherwise
    """
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def _response_text(response: Any) -> str:
    """Normalize the different shapes the transcription endpoint returns."""
    if isinstance(response, str):
        return response.strip()
    text = getattr(response, "text", None)
    if isinstance(text, str):
        return text.strip()
    return str(response).strip()


class TranscriptionClient:
    """
    Handles speech-to-text conversion of chunk files.

    Chunks are processed strictly one at a time so at most one temporary
    chunk file exists and the API sees no request bursts.
    """

    def __init__(self, client: Any, model: str = "whisper-1"):
        """
        Args:
            client: OpenAI client (or any object exposing audio.transcriptions.create)
            model: Speech-to-text model name
        """
        self.client = client
        self.model = model

    def transcribe_file(self, path: str) -> str:
        """
        Transcribe one audio file to plain text.

        Args:
            path: Path to the audio file

        Returns:
            Transcribed text

        Raises:
            TranscriptionError: If the file is missing, too large, or the API call fails
        """
        audio_path = Path(path)

        if not audio_path.is_file():
            raise TranscriptionError(f"Audio file not found: {path}")

        file_size = audio_path.stat().st_size
        if file_size > MAX_UPLOAD_BYTES:
            raise TranscriptionError(f"Audio chunk too large: {file_size / 1024 / 1024:.1f}MB (max: 25MB)")

        try:
            with open(audio_path, "rb") as audio_file:
                response = self.client.audio.transcriptions.create(model=self.model, file=audio_file, response_format="text")
        except Exception as e:
            raise TranscriptionError(f"Failed to transcribe audio: {e}") from e

        return _response_text(response)

    def transcribe_chunks(
        self,
        toolkit: MediaToolkit,
        source: str,
        plan: ChunkPlan,
        on_stage: Optional[Callable[[PipelineState], None]] = None,
    ) -> List[TranscriptSegment]:
        """
        Extract and transcribe every planned chunk in order.

        The first failing chunk aborts the whole run; its temporary file is
        removed before the error propagates.

        Args:
            toolkit: Media backend used to cut chunks
            source: Path to the source audio
            plan: Chunk plan to walk
            on_stage: Called with EXTRACTING/TRANSCRIBING as each chunk advances

        Returns:
            One segment per chunk, in chunk order

        Raises:
            ExtractionError: If a chunk cannot be cut
            TranscriptionError: If a chunk cannot be transcribed
        """
        notify = on_stage or (lambda _stage: None)
        spans = plan.spans
        segments: List[TranscriptSegment] = []
        for span in spans:
            logger.info(f"Chunk {span.index}: {span.start:.1f}s -> {span.end:.1f}s ({span.duration:.1f}s)")
            notify(PipelineState.EXTRACTING)
            reporter.sub_step(f"Extracting {span.describe()}", span.index + 1, len(spans))
            with chunk_artifact(toolkit, source, span) as artifact:
                notify(PipelineState.TRANSCRIBING)
                reporter.sub_step(f"Transcribing {span.describe()}", span.index + 1, len(spans))
                try:
                    text = self.transcribe_file(str(artifact))
                except TranscriptionError as e:
                    raise TranscriptionError(f"Transcription failed on {span.describe()}: {e}", span=span) from e
            segments.append(TranscriptSegment(index=span.index, span=span, text=text))
            reporter.complete_sub_step(f"Transcribed {span.describe()}")
        return segments

