"""
Media toolkit: probing, silence detection and lossless range extraction.

The pipeline only depends on the MediaToolkit interface. FfmpegToolkit is the
production implementation and shells out to ffprobe/ffmpeg once per operation.
"""

import logging
import math
import os
import re
import shlex
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from .config import ConfigError, config
from .timing import timer
from .types import ChunkSpan, InputDescriptor, SilenceMarkers

logger = logging.getLogger(__name__)

SILENCE_END_PATTERN = re.compile(r"silence_end:\s*([0-9]+(?:\.[0-9]+)?)")


class MediaError(Exception):
    """Base class for media toolkit failures."""

    pass


class MediaReadError(MediaError):
    """Raised when the duration or size of the input cannot be obtained."""

    pass


class SilenceScanError(MediaError):
    """Raised when the silence analysis pass fails or cannot be parsed."""

    pass


class ExtractionError(MediaError):
    """Raised when a chunk cannot be cut out of the source file."""

    pass


class MediaToolkit(ABC):
    """
    Capability set the pipeline needs from a media backend.

    Implementations must be stateless with respect to the source file: the
    same source is read by several extract_range calls.
    """

    def ensure_available(self) -> None:
        """Raise ConfigError if the backend cannot run on this machine."""

    @abstractmethod
    def probe(self, path: str) -> InputDescriptor:
        """Return duration and byte size of the file."""

    @abstractmethod
    def detect_silences(self, path: str, duration: float, threshold_db: float, min_silence: float) -> SilenceMarkers:
        """Scan the whole file once and return silence-end markers plus sentinels."""

    @abstractmethod
    def extract_range(self, source: str, span: ChunkSpan, destination: str) -> None:
        """Copy the span's time range from source into destination without re-encoding."""


def parse_silence_ends(diagnostics: str) -> List[float]:
    """
    Extract every "silence_end" timestamp from silencedetect output.

    Args:
        diagnostics: stderr text of an ffmpeg silencedetect pass

    Returns:
        Timestamps in the order ffmpeg reported them
    """
    return [float(match.group(1)) for match in SILENCE_END_PATTERN.finditer(diagnostics)]


class FfmpegToolkit(MediaToolkit):
    """MediaToolkit backed by the ffmpeg and ffprobe executables."""

    REQUIRED_TOOLS = ("ffmpeg", "ffprobe")

    def __init__(self, timeout: Optional[int] = None, ffmpeg: str = "ffmpeg", ffprobe: str = "ffprobe"):
        self.timeout = timeout if timeout is not None else config.ffmpeg_timeout
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe

    def ensure_available(self) -> None:
        missing = [tool for tool in (self.ffmpeg, self.ffprobe) if shutil.which(tool) is None]
        if missing:
            raise ConfigError(f"{' & '.join(missing)} must be installed and on PATH")

    def _run(self, cmd: List[str]) -> subprocess.CompletedProcess:
        logger.debug(f"Running: {shlex.join(cmd)}")
        return subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)

    def probe(self, path: str) -> InputDescriptor:
        source = Path(path)
        try:
            size_bytes = source.stat().st_size
        except OSError as e:
            raise MediaReadError(f"Cannot read {path}: {e}") from e

        cmd = [self.ffprobe, "-v", "error", "-show_entries", "format=duration", "-of", "csv=p=0", str(source)]
        try:
            result = self._run(cmd)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise MediaReadError(f"ffprobe failed on {path}: {e}") from e

        if result.returncode != 0:
            raise MediaReadError(f"ffprobe exited with {result.returncode} on {path}: {result.stderr.strip()}")

        raw = result.stdout.strip()
        try:
            duration = float(raw)
        except ValueError as e:
            raise MediaReadError(f"Could not determine duration of {path} (ffprobe said {raw!r})") from e
        if not math.isfinite(duration) or duration <= 0:
            raise MediaReadError(f"Could not determine duration of {path} (ffprobe said {raw!r})")

        return InputDescriptor(path=str(source.resolve()), duration=duration, size_bytes=size_bytes)

    @timer
    def detect_silences(self, path: str, duration: float, threshold_db: float, min_silence: float) -> SilenceMarkers:
        cmd = [
            self.ffmpeg,
            "-hide_banner",
            "-nostats",
            "-i",
            path,
            "-af",
            f"silencedetect=n={threshold_db}dB:d={min_silence}",
            "-f",
            "null",
            "-",
        ]
        try:
            result = self._run(cmd)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise SilenceScanError(f"Silence scan could not run: {e}") from e

        if result.returncode != 0:
            raise SilenceScanError(f"Silence scan exited with {result.returncode}: {result.stderr.strip()[-500:]}")

        try:
            silence_ends = parse_silence_ends(result.stderr)
        except ValueError as e:
            raise SilenceScanError(f"Unparseable silencedetect output: {e}") from e

        logger.debug(f"Detected {len(silence_ends)} silence ends")
        return SilenceMarkers.from_silence_ends(silence_ends, duration)

    def extract_range(self, source: str, span: ChunkSpan, destination: str) -> None:
        cmd = [
            self.ffmpeg,
            "-y",
            "-v",
            "error",
            "-i",
            source,
            "-ss",
            f"{span.start:.3f}",
            "-t",
            f"{span.duration:.3f}",
            "-c",
            "copy",
            destination,
        ]
        try:
            result = self._run(cmd)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ExtractionError(f"Failed to extract {span.describe()}: {e}") from e

        if result.returncode != 0:
            raise ExtractionError(f"Failed to extract {span.describe()}: {result.stderr.strip()}")

        out = Path(destination)
        if not out.exists() or out.stat().st_size == 0:
            raise ExtractionError(f"Extraction of {span.describe()} produced no audio")


@contextmanager
def chunk_artifact(toolkit: MediaToolkit, source: str, span: ChunkSpan) -> Iterator[Path]:
    """
    Cut one chunk into a temporary file and remove it when the block exits.

    The file is deleted on both the success and the failure path, including
    when extraction itself fails.
    """
    suffix = Path(source).suffix or ".mp3"
    fd, temp_path = tempfile.mkstemp(prefix=f"chunk_{span.index:02d}_", suffix=suffix)
    os.close(fd)
    artifact = Path(temp_path)
    try:
        toolkit.extract_range(source, span, str(artifact))
        yield artifact
    finally:
        artifact.unlink(missing_ok=True)
