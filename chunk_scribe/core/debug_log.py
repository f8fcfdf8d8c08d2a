"""
Debug logging module for detailed pipeline analysis.

This module records the chunk plan and the labeling request/response of a run
as JSON files. Logs are stored in a dedicated subfolder of the .chunk_scribe
metadata directory and are only written when CS_DEBUG=1.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .types import ChunkPlan, SilenceMarkers


class DebugLogger:
    """
    Handles detailed debug logging for a single transcription run.

    Logs are stored in {project_root}/.chunk_scribe/debug/session_<timestamp>/.
    """

    def __init__(self, project_root: str = ".", enabled: Optional[bool] = None):
        """
        Initialize debug logger.

        Args:
            project_root: Directory that holds the .chunk_scribe folder
            enabled: Override debug enable flag, uses CS_DEBUG env var if None
        """
        self.project_root = project_root
        self.enabled = enabled if enabled is not None else is_debug_enabled()
        self.session_id = datetime.now().strftime("%Y%m%d_%H%M%S")

        if self.enabled:
            self._setup_log_directory()

    def _setup_log_directory(self) -> None:
        """Create debug log directory structure."""
        self.log_dir = Path(self.project_root) / ".chunk_scribe" / "debug"
        self.session_dir = self.log_dir / f"session_{self.session_id}"
        self.session_dir.mkdir(parents=True, exist_ok=True)

    def is_enabled(self) -> bool:
        """Check if debug logging is enabled."""
        return self.enabled

    def _write(self, step: str, payload: Dict[str, Any]) -> Optional[Path]:
        if not self.enabled:
            return None

        timestamp = datetime.now().isoformat()
        log_data = {"timestamp": timestamp, "session_id": self.session_id, "step": step, **payload}

        filename = f"{step}_{timestamp.replace(':', '-').replace('.', '_')}.json"
        log_file = self.session_dir / filename

        with open(log_file, "w", encoding="utf-8") as f:
            json.dump(log_data, f, indent=2, ensure_ascii=False, default=str)
        return log_file

    def log_chunk_plan(self, plan: ChunkPlan, markers: SilenceMarkers, degraded: bool) -> Optional[Path]:
        """
        Log the silence markers and the resulting chunk boundaries.

        Args:
            plan: Final chunk plan
            markers: Candidate split points the plan was snapped to
            degraded: Whether the silence scan failed and sentinels were used
        """
        return self._write(
            "chunk_plan",
            {
                "total_duration": plan.total_duration,
                "requested_chunks": plan.requested_chunks,
                "planned_chunks": len(plan),
                "boundaries": plan.boundaries,
                "silence_markers": markers.markers,
                "silence_scan_degraded": degraded,
            },
        )

    def log_label_request(self, system_prompt: str, transcript: str, params: Dict[str, Any]) -> Optional[Path]:
        """Log the chat-completion request sent for speaker labeling."""
        return self._write(
            "label_request",
            {
                "system_prompt": system_prompt,
                "transcript": transcript,
                "transcript_length": len(transcript),
                "params": {k: v for k, v in params.items() if k != "messages"},
            },
        )

    def log_label_response(self, content: str, transcript: str) -> Optional[Path]:
        """Log the labeled transcript returned by the chat model."""
        return self._write(
            "label_response",
            {
                "response_content": content,
                "response_length": len(content),
                "original_length": len(transcript),
            },
        )


# Global debug logger instance
_debug_logger: Optional[DebugLogger] = None


def get_debug_logger(project_root: str = ".") -> DebugLogger:
    """
    Get or create global debug logger instance.

    Args:
        project_root: Project root directory

    Returns:
        DebugLogger instance
    """
    global _debug_logger
    if _debug_logger is None or _debug_logger.project_root != project_root or _debug_logger.enabled != is_debug_enabled():
        _debug_logger = DebugLogger(project_root)
    return _debug_logger


def is_debug_enabled() -> bool:
    """
    Check if debug logging is enabled via environment variable.

    Returns:
        True if CS_DEBUG=1 is set
    """
    return os.getenv("CS_DEBUG", "0") == "1"
