"""
Tests for the ffmpeg-backed media toolkit.

subprocess.run is replaced with a recorder, so these tests need no ffmpeg.
"""

import subprocess
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from chunk_scribe.core import media
from chunk_scribe.core.config import ConfigError
from chunk_scribe.core.media import (
    ExtractionError,
    FfmpegToolkit,
    MediaReadError,
    SilenceScanError,
    chunk_artifact,
    parse_silence_ends,
)
from chunk_scribe.core.types import ChunkSpan
from tests.fakes import FakeToolkit

SILENCEDETECT_STDERR = """\
Input #0, mp3, from 'talk.mp3':
  Duration: 00:00:42.00, start: 0.025057, bitrate: 128 kb/s
[silencedetect @ 0x7f9] silence_start: 3.18
[silencedetect @ 0x7f9] silence_end: 3.92 | silence_duration: 0.74
[silencedetect @ 0x7f9] silence_start: 19.5
[silencedetect @ 0x7f9] silence_end: 20.1 | silence_duration: 0.6
size=N/A time=00:00:42.00 bitrate=N/A speed= 612x
"""


class RecordingRun:
    """Replacement for subprocess.run that records commands and returns canned results."""

    def __init__(self, returncode: int = 0, stdout: str = "", stderr: str = "", raises: Optional[Exception] = None, side_effect: Optional[Callable[[List[str]], None]] = None):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.raises = raises
        self.side_effect = side_effect
        self.commands: List[List[str]] = []
        self.kwargs: List[dict] = []

    def __call__(self, cmd, **kwargs):
        self.commands.append(cmd)
        self.kwargs.append(kwargs)
        if self.raises is not None:
            raise self.raises
        if self.side_effect is not None:
            self.side_effect(cmd)
        return subprocess.CompletedProcess(cmd, self.returncode, stdout=self.stdout, stderr=self.stderr)


@pytest.fixture
def audio_file(tmp_path: Path) -> Path:
    path = tmp_path / "talk.mp3"
    path.write_bytes(b"ID3" + bytes(1021))
    return path


def install(monkeypatch: pytest.MonkeyPatch, runner: RecordingRun) -> RecordingRun:
    monkeypatch.setattr(media.subprocess, "run", runner)
    return runner


class TestParseSilenceEnds:
    """Test parsing of silencedetect diagnostics."""

    def test_parses_all_ends(self):
        assert parse_silence_ends(SILENCEDETECT_STDERR) == [3.92, 20.1]

    def test_no_silences(self):
        assert parse_silence_ends("size=N/A time=00:00:10.00") == []


class TestProbe:
    """Test duration and size probing."""

    def test_probe_reads_duration_and_size(self, monkeypatch, audio_file):
        runner = install(monkeypatch, RecordingRun(stdout="42.000000\n"))
        descriptor = FfmpegToolkit(timeout=5).probe(str(audio_file))

        assert descriptor.duration == 42.0
        assert descriptor.size_bytes == 1024
        assert descriptor.path == str(audio_file.resolve())
        assert runner.commands[0][0] == "ffprobe"
        assert "format=duration" in runner.commands[0]
        assert runner.kwargs[0]["timeout"] == 5

    def test_probe_missing_file(self, monkeypatch, tmp_path):
        runner = install(monkeypatch, RecordingRun(stdout="1.0"))
        with pytest.raises(MediaReadError, match="Cannot read"):
            FfmpegToolkit().probe(str(tmp_path / "nope.mp3"))
        assert runner.commands == []

    @pytest.mark.parametrize("output", ["N/A", "", "nan", "0", "-3.5"])
    def test_probe_unparseable_duration(self, monkeypatch, audio_file, output):
        install(monkeypatch, RecordingRun(stdout=output))
        with pytest.raises(MediaReadError, match="Could not determine duration"):
            FfmpegToolkit().probe(str(audio_file))

    def test_probe_process_failure(self, monkeypatch, audio_file):
        install(monkeypatch, RecordingRun(returncode=1, stderr="Invalid data found when processing input"))
        with pytest.raises(MediaReadError, match="Invalid data"):
            FfmpegToolkit().probe(str(audio_file))

    def test_probe_timeout(self, monkeypatch, audio_file):
        install(monkeypatch, RecordingRun(raises=subprocess.TimeoutExpired(["ffprobe"], 5)))
        with pytest.raises(MediaReadError):
            FfmpegToolkit(timeout=5).probe(str(audio_file))


class TestDetectSilences:
    """Test the single silence scan pass."""

    def test_markers_include_sentinels(self, monkeypatch, audio_file):
        runner = install(monkeypatch, RecordingRun(stderr=SILENCEDETECT_STDERR))
        result = FfmpegToolkit().detect_silences(str(audio_file), 42.0, -30.0, 0.5)

        assert result.markers == [0.0, 3.92, 20.1, 42.0]
        assert "silencedetect=n=-30.0dB:d=0.5" in runner.commands[0]

    def test_nonzero_exit_is_scan_error(self, monkeypatch, audio_file):
        install(monkeypatch, RecordingRun(returncode=1, stderr="boom"))
        with pytest.raises(SilenceScanError):
            FfmpegToolkit().detect_silences(str(audio_file), 42.0, -30.0, 0.5)

    def test_missing_executable_is_scan_error(self, monkeypatch, audio_file):
        install(monkeypatch, RecordingRun(raises=FileNotFoundError("ffmpeg")))
        with pytest.raises(SilenceScanError, match="could not run"):
            FfmpegToolkit().detect_silences(str(audio_file), 42.0, -30.0, 0.5)

    def test_timeout_is_scan_error(self, monkeypatch, audio_file):
        install(monkeypatch, RecordingRun(raises=subprocess.TimeoutExpired(["ffmpeg"], 1)))
        with pytest.raises(SilenceScanError):
            FfmpegToolkit(timeout=1).detect_silences(str(audio_file), 42.0, -30.0, 0.5)


class TestExtractRange:
    """Test lossless range extraction."""

    def test_stream_copy_command(self, monkeypatch, audio_file, tmp_path):
        destination = tmp_path / "chunk.mp3"
        runner = install(monkeypatch, RecordingRun(side_effect=lambda cmd: Path(cmd[-1]).write_bytes(b"audio")))
        span = ChunkSpan(index=1, start=20.1, end=42.0)

        FfmpegToolkit().extract_range(str(audio_file), span, str(destination))

        cmd = runner.commands[0]
        assert cmd[0] == "ffmpeg"
        assert cmd[cmd.index("-c") + 1] == "copy"
        assert cmd[cmd.index("-ss") + 1] == "20.100"
        assert cmd[cmd.index("-t") + 1] == "21.900"
        assert cmd[-1] == str(destination)

    def test_failure_reports_chunk(self, monkeypatch, audio_file, tmp_path):
        install(monkeypatch, RecordingRun(returncode=1, stderr="Conversion failed!"))
        span = ChunkSpan(index=3, start=1.0, end=2.0)
        with pytest.raises(ExtractionError, match="chunk 3"):
            FfmpegToolkit().extract_range(str(audio_file), span, str(tmp_path / "out.mp3"))

    def test_empty_output_is_failure(self, monkeypatch, audio_file, tmp_path):
        destination = tmp_path / "out.mp3"
        destination.touch()
        install(monkeypatch, RecordingRun())
        with pytest.raises(ExtractionError, match="no audio"):
            FfmpegToolkit().extract_range(str(audio_file), ChunkSpan(index=0, start=0.0, end=1.0), str(destination))


class TestEnsureAvailable:
    """Test the external tool check."""

    def test_missing_tools(self, monkeypatch):
        monkeypatch.setattr(media.shutil, "which", lambda name: None)
        with pytest.raises(ConfigError, match="ffmpeg & ffprobe"):
            FfmpegToolkit().ensure_available()

    def test_tools_present(self, monkeypatch):
        monkeypatch.setattr(media.shutil, "which", lambda name: f"/usr/bin/{name}")
        FfmpegToolkit().ensure_available()


class TestChunkArtifact:
    """Test the scoped lifetime of temporary chunk files."""

    def test_removed_after_success(self, audio_file):
        toolkit = FakeToolkit()
        span = ChunkSpan(index=0, start=0.0, end=20.1)
        with chunk_artifact(toolkit, str(audio_file), span) as artifact:
            assert artifact.exists()
            assert artifact.suffix == ".mp3"
            assert artifact.name.startswith("chunk_00_")
        assert not artifact.exists()

    def test_removed_after_error_in_block(self, audio_file):
        toolkit = FakeToolkit()
        span = ChunkSpan(index=1, start=20.1, end=42.0)
        with pytest.raises(RuntimeError):
            with chunk_artifact(toolkit, str(audio_file), span) as artifact:
                raise RuntimeError("upload failed")
        assert not artifact.exists()

    def test_removed_when_extraction_fails(self, audio_file):
        toolkit = FakeToolkit(fail_extract_at=0)
        span = ChunkSpan(index=0, start=0.0, end=5.0)
        with pytest.raises(ExtractionError):
            with chunk_artifact(toolkit, str(audio_file), span):
                pass
        assert not Path(toolkit.destinations[0]).exists()
