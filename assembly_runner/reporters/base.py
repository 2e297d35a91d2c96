"""Abstract base for result reporters consuming lifecycle events."""

import asyncio
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from assembly_runner.models.events import (
    AssemblyFinished,
    AssemblyStarted,
    ErrorOccurred,
    ExecutionEvent,
    TestFailed,
    TestPassed,
    TestSkipped,
    TestStarting,
)
from assembly_runner.models.project import AssemblyRef
from assembly_runner.models.result import ExecutionSummary
from assembly_runner.reporters.xml_tree import AssemblyTreeBuilder
from assembly_runner.run_context import RunContext


@dataclass(kw_only=True)
class ResultReporter(ABC):
    """Consumes the event stream of one assembly.

    Subclasses render events by overriding the ``on_*`` hooks; counting,
    structured-tree building and the completion contract live here. Once
    ``AssemblyFinished`` is handled the summary is recorded in the run's
    completion map and ``finished`` is set.
    """

    assembly: AssemblyRef
    context: RunContext
    assembly_element: ET.Element | None = None
    finished: asyncio.Event = field(default_factory=asyncio.Event)
    _total: int = 0
    _failed: int = 0
    _skipped: int = 0
    _errors: int = 0
    _summary: ExecutionSummary | None = None
    _tree: AssemblyTreeBuilder | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.assembly_element is not None:
            self._tree = AssemblyTreeBuilder(element=self.assembly_element)

    @property
    def summary(self) -> ExecutionSummary:
        """Frozen counters, available once the assembly has finished."""
        if self._summary is None:
            raise RuntimeError(f"Assembly {self.assembly.display_name} has not finished")
        return self._summary

    def handle(self, event: ExecutionEvent) -> None:
        """Process one lifecycle event."""
        match event:
            case AssemblyStarted():
                if self._tree is not None:
                    self._tree.start(event)
                self.on_assembly_started(event)
            case TestStarting():
                self.on_test_starting(event)
            case TestPassed():
                self._total += 1
                self._add_result(event)
                self.on_test_passed(event)
            case TestFailed():
                self._total += 1
                self._failed += 1
                self._add_result(event)
                self.on_test_failed(event)
            case TestSkipped():
                self._total += 1
                self._skipped += 1
                self._add_result(event)
                self.on_test_skipped(event)
            case ErrorOccurred():
                self._errors += 1
                if self._tree is not None:
                    self._tree.add_error(event)
                self.on_error(event)
            case AssemblyFinished():
                self._finish(event)

    @abstractmethod
    def on_assembly_started(self, event: AssemblyStarted) -> None:
        """Render the start of the assembly."""

    def on_test_starting(self, event: TestStarting) -> None:
        """Render a test about to run."""

    def on_test_passed(self, event: TestPassed) -> None:
        """Render a passing test."""

    def on_test_failed(self, event: TestFailed) -> None:
        """Render a failing test."""

    def on_test_skipped(self, event: TestSkipped) -> None:
        """Render a skipped test."""

    def on_error(self, event: ErrorOccurred) -> None:
        """Render a failure outside of any test."""

    @abstractmethod
    def on_assembly_finished(self, event: AssemblyFinished) -> None:
        """Render the end of the assembly."""

    def _add_result(self, event: TestPassed | TestFailed | TestSkipped) -> None:
        if self._tree is not None:
            self._tree.add_result(event)

    def _finish(self, event: AssemblyFinished) -> None:
        self._summary = ExecutionSummary(
            total=self._total,
            failed=self._failed,
            skipped=self._skipped,
            errors=self._errors,
            time=event.execution_time,
        )
        if self._tree is not None:
            self._tree.finish(self._summary)
        self.context.completions.record(self.assembly.display_name, self._summary)
        self.on_assembly_finished(event)
        self.finished.set()
