"""Tests for the console reporter."""

import io

import pytest

from assembly_runner.models.events import (
    AssemblyFinished,
    AssemblyStarted,
    ErrorOccurred,
    TestFailed,
    TestPassed,
    TestSkipped,
    TestStarting,
)
from assembly_runner.models.project import AssemblyRef
from assembly_runner.models.result import ExecutionSummary
from assembly_runner.models.test_case import TestCase
from assembly_runner.reporters import ConsoleReporter, create_reporter
from assembly_runner.run_context import RunContext


@pytest.fixture
def reporter(assembly: AssemblyRef, context: RunContext) -> ConsoleReporter:
    """Console reporter bound to the sample assembly."""
    return ConsoleReporter(assembly=assembly, context=context)


def test_create_reporter_selects_console(
    assembly: AssemblyRef, context: RunContext
) -> None:
    """The console kind maps to the console reporter."""
    assert isinstance(create_reporter("console", assembly, context), ConsoleReporter)


def test_assembly_start_and_finish(
    reporter: ConsoleReporter, started: AssemblyStarted, stream: io.StringIO
) -> None:
    """Start and finish lines carry the assembly display name."""
    reporter.handle(started)
    reporter.handle(AssemblyFinished(execution_time=0.5))

    assert stream.getvalue().splitlines() == [
        "Starting:    sample_math",
        "Finished:    sample_math",
    ]


def test_passing_test_prints_nothing(
    reporter: ConsoleReporter, test_case: TestCase, stream: io.StringIO
) -> None:
    """Starting and passing tests are silent."""
    reporter.handle(TestStarting(test_case=test_case))
    reporter.handle(TestPassed(test_case=test_case, execution_time=0.1))

    assert stream.getvalue() == ""


def test_failed_test_block(
    reporter: ConsoleReporter, test_case: TestCase, stream: io.StringIO
) -> None:
    """Failures print the name, the error, the stack trace and the output."""
    reporter.handle(
        TestFailed(
            test_case=test_case,
            execution_time=0.1,
            exception_type="AssertionError",
            message="expected 4\ngot 5",
            stack_trace="File a.py, line 1\nFile b.py, line 2\n",
            output="captured",
        )
    )

    assert stream.getvalue().splitlines() == [
        "   sample_math.TestMath.test_add [FAIL]",
        "      AssertionError : expected 4",
        "      got 5",
        "      Stack Trace:",
        "         File a.py, line 1",
        "         File b.py, line 2",
        "      Output:",
        "         captured",
    ]


def test_failed_test_without_stack_trace(
    reporter: ConsoleReporter, test_case: TestCase, stream: io.StringIO
) -> None:
    """The stack trace header is omitted when there is no trace."""
    reporter.handle(
        TestFailed(
            test_case=test_case,
            execution_time=0.1,
            exception_type="ValueError",
            message="bad",
        )
    )

    assert "Stack Trace:" not in stream.getvalue()


def test_skipped_test_block(
    reporter: ConsoleReporter, test_case: TestCase, stream: io.StringIO
) -> None:
    """Skips print the name and the reason."""
    reporter.handle(TestSkipped(test_case=test_case, reason="flaky on CI"))

    assert stream.getvalue().splitlines() == [
        "   sample_math.TestMath.test_add [SKIP]",
        "      flaky on CI",
    ]


def test_error_block(reporter: ConsoleReporter, stream: io.StringIO) -> None:
    """Errors outside tests print their source."""
    reporter.handle(
        ErrorOccurred(
            source="Class Cleanup (sample_math.TestMath)",
            exception_type="RuntimeError",
            message="cleanup failed",
        )
    )

    assert stream.getvalue().splitlines() == [
        "   [Class Cleanup (sample_math.TestMath)] RuntimeError",
        "      cleanup failed",
    ]


def test_summary_counts_events(
    reporter: ConsoleReporter,
    started: AssemblyStarted,
    test_case: TestCase,
    context: RunContext,
) -> None:
    """Finishing records the counted summary and sets the finished signal."""
    reporter.handle(started)
    reporter.handle(TestPassed(test_case=test_case, execution_time=0.1))
    reporter.handle(
        TestFailed(
            test_case=test_case,
            execution_time=0.1,
            exception_type="AssertionError",
            message="no",
        )
    )
    reporter.handle(TestSkipped(test_case=test_case, reason="later"))
    reporter.handle(
        ErrorOccurred(source="setup", exception_type="OSError", message="disk")
    )

    assert not reporter.finished.is_set()

    reporter.handle(AssemblyFinished(execution_time=1.5))

    expected = ExecutionSummary(total=3, failed=1, skipped=1, errors=1, time=1.5)
    assert reporter.finished.is_set()
    assert reporter.summary == expected
    assert context.completions.snapshot() == {"sample_math": expected}


def test_summary_unavailable_before_finish(reporter: ConsoleReporter) -> None:
    """Reading the summary before the assembly finished is an error."""
    with pytest.raises(RuntimeError, match="sample_math"):
        _ = reporter.summary
