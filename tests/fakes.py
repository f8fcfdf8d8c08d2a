"""
In-memory stand-ins for ffmpeg and the OpenAI client.

They record every call so tests can assert ordering, arguments and the
lifetime of temporary chunk files without touching the network or disk tools.
"""

from pathlib import Path
from types import SimpleNamespace
from typing import Any, List, Optional, Sequence

from chunk_scribe.core.media import ExtractionError, MediaReadError, MediaToolkit, SilenceScanError
from chunk_scribe.core.types import ChunkSpan, InputDescriptor, SilenceMarkers

MIB = 1024 * 1024


class FakeToolkit(MediaToolkit):
    """MediaToolkit that returns canned probe/silence data and writes dummy chunk files."""

    def __init__(
        self,
        duration: float = 42.0,
        size_bytes: int = 30 * MIB,
        silence_ends: Optional[Sequence[float]] = None,
        silence_error: bool = False,
        probe_error: bool = False,
        fail_extract_at: Optional[int] = None,
    ):
        self.duration = duration
        self.size_bytes = size_bytes
        self.silence_ends = list(silence_ends or [])
        self.silence_error = silence_error
        self.probe_error = probe_error
        self.fail_extract_at = fail_extract_at
        self.calls: List[str] = []
        self.extracted: List[ChunkSpan] = []
        self.destinations: List[str] = []

    def probe(self, path: str) -> InputDescriptor:
        self.calls.append("probe")
        if self.probe_error:
            raise MediaReadError(f"Could not determine duration of {path}")
        return InputDescriptor(path=path, duration=self.duration, size_bytes=self.size_bytes)

    def detect_silences(self, path: str, duration: float, threshold_db: float, min_silence: float) -> SilenceMarkers:
        self.calls.append("detect_silences")
        if self.silence_error:
            raise SilenceScanError("silencedetect exited with 1")
        return SilenceMarkers.from_silence_ends(self.silence_ends, duration)

    def extract_range(self, source: str, span: ChunkSpan, destination: str) -> None:
        self.calls.append("extract_range")
        self.destinations.append(destination)
        if self.fail_extract_at == span.index:
            raise ExtractionError(f"Failed to extract {span.describe()}")
        self.extracted.append(span)
        Path(destination).write_bytes(b"ID3" + bytes(16))


class _Transcriptions:
    def __init__(self, owner: "FakeOpenAI"):
        self.owner = owner

    def create(self, **kwargs: Any) -> Any:
        audio_file = kwargs["file"]
        path = Path(audio_file.name)
        self.owner.transcription_calls.append({"path": path, "existed": path.exists(), **kwargs})
        index = len(self.owner.transcription_calls) - 1
        if self.owner.fail_transcription_at == index:
            raise RuntimeError("503 Service Unavailable")
        return self.owner.transcripts[index]


class _Completions:
    def __init__(self, owner: "FakeOpenAI"):
        self.owner = owner

    def create(self, **kwargs: Any) -> Any:
        self.owner.chat_calls.append(kwargs)
        if self.owner.chat_errors:
            raise self.owner.chat_errors.pop(0)
        if self.owner.labeled is None:
            return SimpleNamespace(choices=[])
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.owner.labeled))])


class FakeOpenAI:
    """Mimics the audio.transcriptions and chat.completions surface of openai.OpenAI."""

    def __init__(
        self,
        transcripts: Sequence[Any] = ("A", "B", "C"),
        labeled: Optional[str] = "Speaker: A B C",
        fail_transcription_at: Optional[int] = None,
        chat_errors: Optional[List[Exception]] = None,
    ):
        self.transcripts = list(transcripts)
        self.labeled = labeled
        self.fail_transcription_at = fail_transcription_at
        self.chat_errors = list(chat_errors or [])
        self.transcription_calls: List[dict] = []
        self.chat_calls: List[dict] = []
        self.audio = SimpleNamespace(transcriptions=_Transcriptions(self))
        self.chat = SimpleNamespace(completions=_Completions(self))
