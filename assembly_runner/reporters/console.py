"""Human-readable console reporter."""

from dataclasses import dataclass

from assembly_runner.models.events import (
    AssemblyFinished,
    AssemblyStarted,
    ErrorOccurred,
    TestFailed,
    TestSkipped,
)
from assembly_runner.reporters.base import ResultReporter


@dataclass(kw_only=True)
class ConsoleReporter(ResultReporter):
    """Writes failures, skips and assembly progress as indented text.

    Passing tests print nothing. Each event is written as one block under
    the shared console lock.
    """

    def on_assembly_started(self, event: AssemblyStarted) -> None:
        self.context.write_lines(f"Starting:    {self.assembly.display_name}")

    def on_test_failed(self, event: TestFailed) -> None:
        lines = [f"   {event.test_case.display_name} [FAIL]"]
        lines.extend(_indent(f"{event.exception_type} : {event.message}", 6))
        if event.stack_trace:
            lines.append("      Stack Trace:")
            lines.extend(_indent(event.stack_trace, 9))
        if event.output:
            lines.append("      Output:")
            lines.extend(_indent(event.output, 9))
        self.context.write_lines(*lines)

    def on_test_skipped(self, event: TestSkipped) -> None:
        self.context.write_lines(
            f"   {event.test_case.display_name} [SKIP]",
            *_indent(event.reason, 6),
        )

    def on_error(self, event: ErrorOccurred) -> None:
        lines = [f"   [{event.source}] {event.exception_type}"]
        lines.extend(_indent(event.message, 6))
        if event.stack_trace:
            lines.append("      Stack Trace:")
            lines.extend(_indent(event.stack_trace, 9))
        self.context.write_lines(*lines)

    def on_assembly_finished(self, event: AssemblyFinished) -> None:
        self.context.write_lines(f"Finished:    {self.assembly.display_name}")


def _indent(text: str, width: int) -> list[str]:
    prefix = " " * width
    return [f"{prefix}{line}" for line in text.rstrip().splitlines()]
