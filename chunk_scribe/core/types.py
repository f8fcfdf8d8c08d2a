"""
Type definitions for chunk-scribe.

This module defines the data structures that flow through the pipeline:
the probed input, the silence marker set, the chunk plan and the per-chunk
transcript segments.
"""

import math
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PipelineState(str, Enum):
    """Stages of a single transcription run."""

    PROBING = "probing"
    SILENCE_SCANNING = "silence_scanning"
    PLANNING = "planning"
    EXTRACTING = "extracting"
    TRANSCRIBING = "transcribing"
    ASSEMBLING = "assembling"
    LABELING = "labeling"
    DONE = "done"
    FAILED = "failed"


class InputDescriptor(BaseModel):
    """
    Probed facts about the source audio file.

    Attributes:
        path: Absolute path to the audio file
        duration: Total duration in seconds
        size_bytes: File size in bytes
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Path to the source audio file")
    duration: float = Field(..., gt=0.0, description="Total duration in seconds")
    size_bytes: int = Field(..., ge=0, description="File size in bytes")

    @field_validator("duration")
    @classmethod
    def _finite_duration(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("duration must be a finite number")
        return value

    @property
    def size_mib(self) -> float:
        return self.size_bytes / 1024 / 1024


class SilenceMarkers(BaseModel):
    """
    Sorted timestamps where detected silences end, including the 0.0 and
    total-duration sentinels.
    """

    model_config = ConfigDict(frozen=True)

    markers: List[float] = Field(..., min_length=2, description="Sorted candidate split points in seconds")

    @field_validator("markers")
    @classmethod
    def _sorted_unique(cls, value: List[float]) -> List[float]:
        return sorted(set(value))

    @classmethod
    def from_silence_ends(cls, silence_ends: List[float], total_duration: float) -> "SilenceMarkers":
        """Build a marker set from raw silence-end timestamps, adding both sentinels."""
        inside = [t for t in silence_ends if 0.0 < t < total_duration]
        return cls(markers=[0.0, *inside, total_duration])

    @classmethod
    def sentinels_only(cls, total_duration: float) -> "SilenceMarkers":
        return cls(markers=[0.0, total_duration])

    @property
    def silence_count(self) -> int:
        """Number of detected silences, sentinels excluded."""
        return max(0, len(self.markers) - 2)


class ChunkSpan(BaseModel):
    """One contiguous [start, end) slice of the source audio."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0)
    start: float = Field(..., ge=0.0)
    end: float

    @model_validator(mode="after")
    def _non_degenerate(self) -> "ChunkSpan":
        if self.end <= self.start:
            raise ValueError(f"chunk {self.index} is degenerate: {self.start} -> {self.end}")
        return self

    @property
    def duration(self) -> float:
        return self.end - self.start

    def describe(self) -> str:
        return f"chunk {self.index}: {self.start:.1f}s -> {self.end:.1f}s ({self.duration:.1f}s)"


class ChunkPlan(BaseModel):
    """
    Ordered cut boundaries covering [0, total_duration].

    The plan's spans are the consecutive boundary pairs; the first boundary is
    always 0.0 and the last is the total duration.
    """

    total_duration: float = Field(..., gt=0.0)
    requested_chunks: int = Field(..., ge=1, description="Chunk count derived from the byte budget")
    boundaries: List[float] = Field(..., min_length=2)

    @model_validator(mode="after")
    def _check_boundaries(self) -> "ChunkPlan":
        if self.boundaries[0] != 0.0 or self.boundaries[-1] != self.total_duration:
            raise ValueError("chunk plan must start at 0.0 and end at the total duration")
        for earlier, later in zip(self.boundaries, self.boundaries[1:]):
            if later <= earlier:
                raise ValueError("chunk boundaries must be strictly increasing")
        return self

    @property
    def spans(self) -> List[ChunkSpan]:
        return [
            ChunkSpan(index=i, start=start, end=end)
            for i, (start, end) in enumerate(zip(self.boundaries, self.boundaries[1:]))
        ]

    def __len__(self) -> int:
        return len(self.boundaries) - 1


class TranscriptSegment(BaseModel):
    """Raw transcript text of one chunk."""

    index: int = Field(..., ge=0)
    span: ChunkSpan
    text: str = Field(default="", description="Plain text returned by the speech-to-text service")


class PipelineResult(BaseModel):
    """Everything a completed run produced."""

    descriptor: InputDescriptor
    plan: ChunkPlan
    segments: List[TranscriptSegment] = Field(default_factory=list)
    raw_transcript: str = ""
    labeled_transcript: str = ""
    silence_scan_degraded: bool = Field(default=False, description="True when silence detection failed and sentinels were used")
    labeling_degraded: bool = Field(default=False, description="True when the raw transcript stands in for a failed labeling call")
