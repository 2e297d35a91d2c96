"""Process-wide run state threaded through the orchestration call chain."""

import sys
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TextIO

from assembly_runner.models.result import ExecutionSummary


@dataclass(kw_only=True)
class CompletionMap:
    """Execution summaries keyed by assembly display name.

    Writers may run on different threads; each assembly writes its own key
    once, and the map is read only after every writer has finished.
    """

    _summaries: dict[str, ExecutionSummary] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(self, assembly_name: str, summary: ExecutionSummary) -> None:
        with self._lock:
            self._summaries[assembly_name] = summary

    def snapshot(self) -> Mapping[str, ExecutionSummary]:
        with self._lock:
            return dict(self._summaries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._summaries)


@dataclass(kw_only=True)
class RunContext:
    """Cancellation and failure flags plus the resources reporters share."""

    cancel_requested: bool = False
    any_assembly_failed: bool = False
    completions: CompletionMap = field(default_factory=CompletionMap)
    console_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    stream: TextIO = field(default_factory=lambda: sys.stdout, repr=False)

    def request_cancel(self) -> bool:
        """Set the cancel flag; returns True only for the first request."""
        if self.cancel_requested:
            return False
        self.cancel_requested = True
        return True

    def mark_failed(self) -> None:
        self.any_assembly_failed = True

    def write_lines(self, *lines: str) -> None:
        """Write whole lines to the output stream without interleaving."""
        with self.console_lock:
            for line in lines:
                print(line, file=self.stream)
            self.stream.flush()
