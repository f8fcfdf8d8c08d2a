"""
Global progress reporting module for chunk-scribe.

This module provides a centralized progress reporter used throughout the
pipeline to show status updates on stderr while stdout stays reserved for
the final transcript.
"""

from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.status import Status


class ProgressReporter:
    """
    Global progress reporter for status updates with step completion tracking.

    Provides a centralized way to report progress steps without passing
    console or status objects through function parameters. When the reporter
    was never initialized (library use, tests) every call is a no-op.
    """

    def __init__(self):
        self._status: Optional[Status] = None
        self._console: Optional[Console] = None
        self._completed_steps: List[str] = []
        self._current_step: Optional[str] = None

    def initialize(self, console: Console, initial_message: str = "Starting...") -> Status:
        """
        Initialize the reporter with a console and create a status object.

        Args:
            console: Rich console instance (expected to write to stderr)
            initial_message: Initial status message

        Returns:
            Status object that should be used in a context manager
        """
        self._console = console
        self._status = console.status(f"[dim]{initial_message}[/dim]")
        self._completed_steps = []
        self._current_step = initial_message
        return self._status

    def step(self, message: str) -> None:
        """
        Update the current progress step and mark previous step as completed.

        Args:
            message: Progress step message to display
        """
        if self._status is not None:
            if self._current_step is not None:
                self._completed_steps.append(self._current_step)
                if self._console is not None:
                    self._console.print(f"[green]✓[/green] [dim]{self._current_step}[/dim]")

            self._current_step = message
            self._status.update(f"[dim]{message}[/dim]")

    def complete_step(self, message: Optional[str] = None) -> None:
        """
        Mark the current step as completed without starting a new one.

        Args:
            message: Optional custom completion message
        """
        if self._current_step is not None:
            completion_msg = message or self._current_step
            self._completed_steps.append(completion_msg)
            if self._console is not None:
                self._console.print(f"[green]✓[/green] [dim]{completion_msg}[/dim]")
            self._current_step = None

    def sub_step(self, message: str, current: int = 0, total: int = 0) -> None:
        """
        Update progress with sub-step information without marking previous step as completed.

        Args:
            message: Sub-step message to display
            current: Current step number (optional)
            total: Total number of steps (optional)
        """
        if self._status is not None:
            if current > 0 and total > 0:
                progress_msg = f"{message} ({current}/{total})"
            else:
                progress_msg = message
            self._status.update(f"[dim]{progress_msg}[/dim]")

    def complete_sub_step(self, message: str) -> None:
        """Print an indented checkmark for a finished sub-step (e.g. one chunk)."""
        if self._console is not None:
            self._console.print(f"  [green]✓[/green] [dim]{message}[/dim]")

    def note(self, message: str) -> None:
        """Print an informational line without touching the current step."""
        if self._console is not None:
            self._console.print(f"[dim]{escape(message)}[/dim]")

    def reset(self) -> None:
        """Detach from the console once a run has finished."""
        self._status = None
        self._console = None
        self._current_step = None

    @property
    def completed_steps(self) -> List[str]:
        return list(self._completed_steps)


# Global reporter instance
reporter = ProgressReporter()
