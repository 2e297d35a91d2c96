"""Reporter emitting TeamCity service messages."""

from collections.abc import Mapping
from dataclasses import dataclass

from assembly_runner.models.events import (
    AssemblyFinished,
    AssemblyStarted,
    ErrorOccurred,
    TestFailed,
    TestPassed,
    TestSkipped,
    TestStarting,
)
from assembly_runner.models.test_case import TestCase
from assembly_runner.reporters.base import ResultReporter

# "|" must be escaped first
ESCAPES = (
    ("|", "||"),
    ("'", "|'"),
    ("\n", "|n"),
    ("\r", "|r"),
    ("[", "|["),
    ("]", "|]"),
    ("\u0085", "|0x0085"),
    ("\u2028", "|0x2028"),
    ("\u2029", "|0x2029"),
)


def escape(value: str) -> str:
    """Escape a value for use inside a service message attribute."""
    for char, replacement in ESCAPES:
        value = value.replace(char, replacement)
    return value


def service_message(name: str, attributes: Mapping[str, str]) -> str:
    """Format a ``##teamcity[...]`` service message."""
    rendered = " ".join(f"{key}='{escape(value)}'" for key, value in attributes.items())
    return f"##teamcity[{name} {rendered}]"


@dataclass(kw_only=True)
class TeamCityReporter(ResultReporter):
    """Reports suite and test progress as TeamCity service messages.

    Tests of one collection share a flow so concurrently running collections
    stay distinguishable in the build log.
    """

    def on_assembly_started(self, event: AssemblyStarted) -> None:
        self._emit(
            "testSuiteStarted",
            name=self.assembly.display_name,
            flowId=self.assembly.display_name,
        )

    def on_test_starting(self, event: TestStarting) -> None:
        self._emit_test("testStarted", event.test_case)

    def on_test_passed(self, event: TestPassed) -> None:
        self._emit_output(event.test_case, event.output)
        self._emit_finished(event.test_case, event.execution_time)

    def on_test_failed(self, event: TestFailed) -> None:
        self._emit_output(event.test_case, event.output)
        self._emit_test(
            "testFailed",
            event.test_case,
            message=f"{event.exception_type} : {event.message}",
            details=event.stack_trace,
        )
        self._emit_finished(event.test_case, event.execution_time)

    def on_test_skipped(self, event: TestSkipped) -> None:
        self._emit_test("testIgnored", event.test_case, message=event.reason)
        self._emit_finished(event.test_case, 0.0)

    def on_error(self, event: ErrorOccurred) -> None:
        self._emit(
            "message",
            status="ERROR",
            text=f"[{event.source}] {event.exception_type}: {event.message}",
            errorDetails=event.stack_trace,
        )

    def on_assembly_finished(self, event: AssemblyFinished) -> None:
        self._emit(
            "testSuiteFinished",
            name=self.assembly.display_name,
            flowId=self.assembly.display_name,
        )

    def _emit(self, message_name: str, /, **attributes: str) -> None:
        self.context.write_lines(service_message(message_name, attributes))

    def _emit_test(
        self, message_name: str, test_case: TestCase, /, **attributes: str
    ) -> None:
        self._emit(
            message_name,
            name=test_case.display_name,
            **attributes,
            flowId=test_case.collection,
        )

    def _emit_output(self, test_case: TestCase, output: str) -> None:
        if output:
            self._emit_test("testStdOut", test_case, out=output)

    def _emit_finished(self, test_case: TestCase, execution_time: float) -> None:
        self._emit_test(
            "testFinished", test_case, duration=str(int(execution_time * 1000))
        )
