"""Lifecycle events delivered by a test engine to a result reporter."""

from dataclasses import dataclass
from datetime import datetime

from assembly_runner.models.project import AssemblyRef
from assembly_runner.models.test_case import TestCase


@dataclass(frozen=True, kw_only=True)
class AssemblyStarted:
    """Execution of an assembly has begun."""

    assembly: AssemblyRef
    test_framework: str
    environment: str
    start_time: datetime


@dataclass(frozen=True, kw_only=True)
class TestStarting:
    """A test is about to run."""

    __test__ = False

    test_case: TestCase


@dataclass(frozen=True, kw_only=True)
class TestPassed:
    __test__ = False

    test_case: TestCase
    execution_time: float
    output: str = ""


@dataclass(frozen=True, kw_only=True)
class TestFailed:
    __test__ = False

    test_case: TestCase
    execution_time: float
    exception_type: str
    message: str
    stack_trace: str = ""
    output: str = ""


@dataclass(frozen=True, kw_only=True)
class TestSkipped:
    __test__ = False

    test_case: TestCase
    reason: str


@dataclass(frozen=True, kw_only=True)
class ErrorOccurred:
    """A failure outside of any single test, such as a class teardown."""

    source: str
    exception_type: str
    message: str
    stack_trace: str = ""


@dataclass(frozen=True, kw_only=True)
class AssemblyFinished:
    """Terminal event: no further events follow for the assembly."""

    execution_time: float


type TestResultEvent = TestPassed | TestFailed | TestSkipped

type ExecutionEvent = (
    AssemblyStarted
    | TestStarting
    | TestPassed
    | TestFailed
    | TestSkipped
    | ErrorOccurred
    | AssemblyFinished
)
