"""
End-to-end transcription pipeline.

This module orchestrates probing, silence scanning, chunk planning, the
sequential chunk transcription loop, transcript assembly and speaker labeling.
"""

import logging
from typing import Optional, Tuple

from pydantic import BaseModel, Field

from .assemble import assemble_transcript
from .debug_log import get_debug_logger
from .labeler import LabelingError, SpeakerLabeler
from .media import MediaToolkit, SilenceScanError
from .planner import DEFAULT_MAX_CHUNK_MIB, MIB, plan_chunks
from .progress import reporter
from .speech import TranscriptionClient
from .types import ChunkPlan, InputDescriptor, PipelineResult, PipelineState, SilenceMarkers

logger = logging.getLogger(__name__)


class PipelineOptions(BaseModel):
    """Tunable knobs of a run."""

    max_chunk_mib: float = Field(default=DEFAULT_MAX_CHUNK_MIB, gt=0.0, description="Approximate max chunk size in MiB")
    threshold_db: float = Field(default=-30.0, description="Silence threshold in dB")
    min_silence: float = Field(default=0.5, gt=0.0, description="Minimum silence duration (and minimum chunk length) in seconds")
    fallback_raw: bool = Field(default=False, description="Return the unlabeled transcript when labeling fails")

    @property
    def max_chunk_bytes(self) -> float:
        return self.max_chunk_mib * MIB


class TranscriptionPipeline:
    """
    Runs one audio file through the whole chunk -> transcribe -> label flow.

    The toolkit, transcriber and labeler are injected so the flow can run
    against fakes. Only the silence scan degrades on failure; every other
    error moves the pipeline to FAILED and propagates.
    """

    def __init__(
        self,
        toolkit: MediaToolkit,
        transcriber: Optional[TranscriptionClient] = None,
        labeler: Optional[SpeakerLabeler] = None,
        options: Optional[PipelineOptions] = None,
        project_root: str = ".",
    ):
        self.toolkit = toolkit
        self.transcriber = transcriber
        self.labeler = labeler
        self.options = options or PipelineOptions()
        self.debug_logger = get_debug_logger(project_root)
        self.state = PipelineState.PROBING

    def _enter(self, state: PipelineState) -> None:
        logger.debug(f"Pipeline state: {self.state.value} -> {state.value}")
        self.state = state

    def _scan_silences(self, descriptor: InputDescriptor) -> Tuple[SilenceMarkers, bool]:
        try:
            markers = self.toolkit.detect_silences(
                descriptor.path, descriptor.duration, self.options.threshold_db, self.options.min_silence
            )
            return markers, False
        except SilenceScanError as e:
            logger.warning(f"Silence detection failed, sending the whole file as a single unsnapped chunk: {e}")
            return SilenceMarkers.sentinels_only(descriptor.duration), True

    def _label(self, raw_transcript: str) -> Tuple[str, bool]:
        try:
            return self.labeler.label(raw_transcript), False
        except LabelingError as e:
            if not self.options.fallback_raw:
                raise
            logger.warning(f"Speaker labeling failed, emitting the raw transcript instead: {e}")
            return raw_transcript, True

    def plan(self, path: str) -> Tuple[InputDescriptor, ChunkPlan, bool]:
        """
        Probe, scan and plan without calling any network service.

        Returns:
            (input descriptor, chunk plan, whether the silence scan degraded)
        """
        try:
            self._enter(PipelineState.PROBING)
            reporter.step("Probing audio file…")
            descriptor = self.toolkit.probe(path)
            reporter.note(f"Processing: {descriptor.path} ({descriptor.size_mib:.1f} MiB, {descriptor.duration:.1f}s)")

            self._enter(PipelineState.SILENCE_SCANNING)
            reporter.step("Detecting silences (once)…")
            markers, degraded = self._scan_silences(descriptor)

            self._enter(PipelineState.PLANNING)
            reporter.step("Planning chunk boundaries…")
            chunk_plan = plan_chunks(descriptor, markers, self.options.max_chunk_bytes, self.options.min_silence)
            self.debug_logger.log_chunk_plan(chunk_plan, markers, degraded)
            reporter.note("Final boundaries (s): " + ", ".join(f"{b:.1f}" for b in chunk_plan.boundaries))
            return descriptor, chunk_plan, degraded
        except Exception:
            self._enter(PipelineState.FAILED)
            raise

    def run(self, path: str) -> PipelineResult:
        """
        Transcribe and label one audio file.

        Args:
            path: Path to the source audio

        Returns:
            PipelineResult with raw and labeled transcripts

        Raises:
            MediaReadError, ExtractionError, TranscriptionError, LabelingError
        """
        if self.transcriber is None or self.labeler is None:
            raise ValueError("run() needs both a transcriber and a labeler")

        descriptor, chunk_plan, degraded = self.plan(path)
        try:
            reporter.step(f"Transcribing {len(chunk_plan)} chunk(s)…")
            segments = self.transcriber.transcribe_chunks(self.toolkit, descriptor.path, chunk_plan, on_stage=self._enter)

            self._enter(PipelineState.ASSEMBLING)
            reporter.step("Assembling transcript…")
            raw_transcript = assemble_transcript(segments)

            self._enter(PipelineState.LABELING)
            reporter.step("Labeling speakers…")
            labeled, labeling_degraded = self._label(raw_transcript)
        except Exception:
            self._enter(PipelineState.FAILED)
            raise

        self._enter(PipelineState.DONE)
        reporter.complete_step()
        return PipelineResult(
            descriptor=descriptor,
            plan=chunk_plan,
            segments=segments,
            raw_transcript=raw_transcript,
            labeled_transcript=labeled,
            silence_scan_degraded=degraded,
            labeling_degraded=labeling_degraded,
        )
