"""Reporter emitting one JSON message per event for IDE hosts."""

from dataclasses import dataclass
from typing import Literal

from assembly_runner.models.base import Model
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
from assembly_runner.run_context import RunContext

type MessageType = Literal[
    "assembly-started",
    "test-discovered",
    "test-started",
    "test-result",
    "error",
    "assembly-finished",
]


class DesignTimeMessage(Model):
    """A single JSON line of the design-time protocol."""

    type: MessageType
    assembly: str
    test: str | None = None
    unique_id: str | None = None
    outcome: Literal["passed", "failed", "skipped"] | None = None
    duration: float | None = None
    message: str | None = None
    stack_trace: str | None = None

    @classmethod
    def for_test(
        cls,
        message_type: MessageType,
        assembly: str,
        test_case: TestCase,
        **fields: object,
    ) -> "DesignTimeMessage":
        return cls.model_validate(
            {
                "type": message_type,
                "assembly": assembly,
                "test": test_case.display_name,
                "unique_id": test_case.unique_id,
                **fields,
            }
        )


def write_message(context: RunContext, message: DesignTimeMessage) -> None:
    context.write_lines(message.model_dump_json(exclude_none=True))


@dataclass(kw_only=True)
class DesignTimeReporter(ResultReporter):
    """Streams events as JSON lines on the output stream."""

    def on_assembly_started(self, event: AssemblyStarted) -> None:
        self._write(DesignTimeMessage(type="assembly-started", assembly=self._name))

    def on_test_starting(self, event: TestStarting) -> None:
        self._write(
            DesignTimeMessage.for_test("test-started", self._name, event.test_case)
        )

    def on_test_passed(self, event: TestPassed) -> None:
        self._write(
            DesignTimeMessage.for_test(
                "test-result",
                self._name,
                event.test_case,
                outcome="passed",
                duration=event.execution_time,
            )
        )

    def on_test_failed(self, event: TestFailed) -> None:
        self._write(
            DesignTimeMessage.for_test(
                "test-result",
                self._name,
                event.test_case,
                outcome="failed",
                duration=event.execution_time,
                message=f"{event.exception_type} : {event.message}",
                stack_trace=event.stack_trace or None,
            )
        )

    def on_test_skipped(self, event: TestSkipped) -> None:
        self._write(
            DesignTimeMessage.for_test(
                "test-result",
                self._name,
                event.test_case,
                outcome="skipped",
                message=event.reason,
            )
        )

    def on_error(self, event: ErrorOccurred) -> None:
        self._write(
            DesignTimeMessage(
                type="error",
                assembly=self._name,
                message=f"[{event.source}] {event.exception_type}: {event.message}",
                stack_trace=event.stack_trace or None,
            )
        )

    def on_assembly_finished(self, event: AssemblyFinished) -> None:
        self._write(
            DesignTimeMessage(
                type="assembly-finished",
                assembly=self._name,
                duration=event.execution_time,
            )
        )

    @property
    def _name(self) -> str:
        return self.assembly.display_name

    def _write(self, message: DesignTimeMessage) -> None:
        write_message(self.context, message)
