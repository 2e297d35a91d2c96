"""Test orchestrator sequencing discovery and execution per assembly."""

import logging
import time
import xml.etree.ElementTree as ET
from collections.abc import Callable, Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field

from assembly_runner.engines.base import ExecutionOptions, TestEngine
from assembly_runner.filters import filter_test_cases
from assembly_runner.models.project import AssemblyRef, Project
from assembly_runner.models.test_case import TestCase
from assembly_runner.reporters import ReporterKind, create_reporter
from assembly_runner.reporters.design_time import DesignTimeMessage, write_message
from assembly_runner.run_context import RunContext
from assembly_runner.summary import exit_code, format_summary
from assembly_runner.transforms import apply_transforms

log = logging.getLogger(__name__)

type EngineFactory = Callable[[AssemblyRef], AbstractAsyncContextManager[TestEngine]]


@dataclass(frozen=True, kw_only=True)
class TestOrchestrator:
    """Runs a project's assemblies one at a time on an engine.

    Cancellation is checked only before starting each assembly; an assembly
    that has started always runs to completion.
    """

    __test__ = False

    engine_factory: EngineFactory
    context: RunContext
    reporter_kind: ReporterKind = "console"
    options: ExecutionOptions = field(default_factory=ExecutionOptions)
    list_tests: bool = False

    async def run(self, project: Project) -> int:
        """Run every assembly of the project and return the exit status.

        Args:
            project: Assemblies, filters and requested output transforms

        Returns:
            Total failed tests, at least 1 when any assembly failed to run

        """
        assemblies_element = ET.Element("assemblies") if project.output else None
        started = time.perf_counter()

        for assembly in project.assemblies:
            if self.context.cancel_requested:
                log.info("Cancellation requested, skipping remaining assemblies")
                break

            assembly_element = await self.run_assembly(
                assembly, project, needs_xml=assemblies_element is not None
            )
            if assemblies_element is not None and assembly_element is not None:
                assemblies_element.append(assembly_element)

        clock_time = time.perf_counter() - started
        summaries = self.context.completions.snapshot()

        if summaries and self.reporter_kind != "design-time":
            self.context.write_lines(*format_summary(summaries, clock_time))

        if assemblies_element is not None:
            apply_transforms(project.output, assemblies_element)

        return exit_code(summaries, self.context.any_assembly_failed)

    async def run_assembly(
        self, assembly: AssemblyRef, project: Project, needs_xml: bool = False
    ) -> ET.Element | None:
        """Discover, filter and execute a single assembly.

        Failures are reported and recorded in the run context instead of
        propagating, so the remaining assemblies still run.
        """
        assembly_element = ET.Element("assembly") if needs_xml else None

        try:
            self._progress(f"Discovering: {assembly.display_name}")
            async with self.engine_factory(assembly) as engine:
                discovered = await engine.discover(assembly)
                self._progress(f"Discovered:  {assembly.display_name}")

                test_cases = filter_test_cases(discovered, project.filters)
                log.info(
                    "Selected %d of %d test(s) in %s",
                    len(test_cases),
                    len(discovered),
                    assembly.display_name,
                )

                if self.list_tests:
                    self._list(assembly, test_cases)
                    return None

                reporter = create_reporter(
                    self.reporter_kind, assembly, self.context, assembly_element
                )
                await engine.execute(assembly, test_cases, reporter.handle, self.options)
                await reporter.finished.wait()
        except Exception as e:
            log.error("Assembly %s failed: %s", assembly.display_name, e, exc_info=e)
            self.context.write_lines(f"{type(e).__qualname__}: {e}")
            self.context.mark_failed()

        return assembly_element

    def _progress(self, line: str) -> None:
        if self.reporter_kind != "design-time":
            self.context.write_lines(line)

    def _list(self, assembly: AssemblyRef, test_cases: Sequence[TestCase]) -> None:
        if self.reporter_kind == "design-time":
            for test_case in test_cases:
                write_message(
                    self.context,
                    DesignTimeMessage.for_test(
                        "test-discovered", assembly.display_name, test_case
                    ),
                )
            return

        self.context.write_lines(*(test_case.display_name for test_case in test_cases))
