"""Abstract base for test engines that discover and execute test cases."""

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from assembly_runner.models.events import ExecutionEvent
from assembly_runner.models.project import AssemblyRef
from assembly_runner.models.test_case import TestCase

type EventSink = Callable[[ExecutionEvent], None]


class AssemblyLoadError(Exception):
    """Raised when an assembly cannot be loaded for discovery or execution."""


@dataclass(frozen=True, kw_only=True)
class ExecutionOptions:
    """Parallelization options for a single assembly run."""

    disable_parallelization: bool = False
    max_threads: int = 0


class TestEngine(ABC):
    """Collaborator contract for discovering and running test cases.

    Engines deliver events to the sink on the event loop thread, starting
    with ``AssemblyStarted`` and ending with ``AssemblyFinished``.
    """

    __test__ = False

    @abstractmethod
    async def discover(self, assembly: AssemblyRef) -> Sequence[TestCase]:
        """Discover every test case in an assembly.

        Args:
            assembly: Assembly to inspect

        Returns:
            Discovered test cases in declaration order

        Raises:
            AssemblyLoadError: If the assembly cannot be loaded

        """

    @abstractmethod
    async def execute(
        self,
        assembly: AssemblyRef,
        test_cases: Sequence[TestCase],
        sink: EventSink,
        options: ExecutionOptions,
    ) -> None:
        """Run the given test cases, emitting lifecycle events to ``sink``.

        Args:
            assembly: Assembly the test cases were discovered in
            test_cases: Filtered test cases to run
            sink: Receiver of lifecycle events
            options: Parallelization options

        """
