"""Python module engine implementation."""

import asyncio
import importlib.util
import inspect
import logging
import platform
import shutil
import sys
import tempfile
import time
import traceback
import uuid
from collections.abc import AsyncGenerator, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import ModuleType
from typing import Any

from assembly_runner.engines.base import (
    AssemblyLoadError,
    EventSink,
    ExecutionOptions,
    TestEngine,
)
from assembly_runner.engines.python_module.config import PythonModuleConfig
from assembly_runner.markers import get_skip_reason, get_traits
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
from assembly_runner.models.test_case import TestCase

log = logging.getLogger(__name__)

TEST_FRAMEWORK = "python-module"
ASSEMBLY_MODULE_ATTR = "__assembly_runner_assembly__"

# Everything else raised by test code, SystemExit included, fails the test.
_PROPAGATED = (KeyboardInterrupt, asyncio.CancelledError)


@dataclass(frozen=True, kw_only=True)
class _TestEntry:
    """Callable behind a discovered test case."""

    function: Callable[..., Any]
    owner: type | None = None


@dataclass(frozen=True, kw_only=True)
class PythonModuleEngine(TestEngine):
    """Discovers and runs tests defined in a Python source file.

    Module-level functions form one collection; each test class forms its own
    collection and gets a fresh instance per test.
    """

    config: PythonModuleConfig
    workspace: Path
    _entries: dict[str, _TestEntry] = field(default_factory=dict, repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: PythonModuleConfig
    ) -> AsyncGenerator["PythonModuleEngine", None]:
        """Create engine with a managed scratch directory for shadow copies."""
        with tempfile.TemporaryDirectory(prefix="assembly-runner-") as workspace:
            yield cls(config=config, workspace=Path(workspace))

    async def discover(self, assembly: AssemblyRef) -> Sequence[TestCase]:
        """Import the assembly and collect its tests in declaration order."""
        module = await self._load_module(assembly)
        test_cases: list[TestCase] = []

        for name, member in list(vars(module).items()):
            if getattr(member, "__module__", None) != module.__name__:
                continue
            if inspect.isfunction(member) and name.startswith(
                self.config.function_prefix
            ):
                test_cases.append(self._add_function(module, member))
            elif inspect.isclass(member) and name.startswith(self.config.class_prefix):
                test_cases.extend(self._add_class(member))

        log.info("Discovered %d test(s) in %s", len(test_cases), assembly.display_name)
        return test_cases

    async def execute(
        self,
        assembly: AssemblyRef,
        test_cases: Sequence[TestCase],
        sink: EventSink,
        options: ExecutionOptions,
    ) -> None:
        """Run collections concurrently, tests within a collection in order."""
        started = time.perf_counter()
        sink(
            AssemblyStarted(
                assembly=assembly,
                test_framework=TEST_FRAMEWORK,
                environment=_describe_environment(options),
                start_time=datetime.now(),
            )
        )

        collections: dict[str, list[TestCase]] = {}
        for test_case in test_cases:
            collections.setdefault(test_case.collection, []).append(test_case)

        try:
            if options.disable_parallelization:
                for cases in collections.values():
                    await self._run_collection(cases, sink)
            else:
                limit = (
                    asyncio.Semaphore(options.max_threads)
                    if options.max_threads > 0
                    else None
                )
                async with asyncio.TaskGroup() as group:
                    for cases in collections.values():
                        group.create_task(self._run_limited(limit, cases, sink))
        finally:
            sink(AssemblyFinished(execution_time=time.perf_counter() - started))

    async def _load_module(self, assembly: AssemblyRef) -> ModuleType:
        source = assembly.assembly_filename
        if not source.is_file():
            raise AssemblyLoadError(f"Assembly not found: {source}")

        if assembly.shadow_copy:
            shadow_dir = self.workspace / uuid.uuid4().hex
            shadow_dir.mkdir()
            source = Path(await asyncio.to_thread(shutil.copy2, source, shadow_dir))
            log.info("Shadow copied %s to %s", assembly.assembly_filename, source)

        module_name = assembly.assembly_filename.stem
        existing = sys.modules.get(module_name)
        if existing is not None and not getattr(existing, ASSEMBLY_MODULE_ATTR, False):
            raise AssemblyLoadError(
                f"Module name '{module_name}' conflicts with an imported module"
            )

        spec = importlib.util.spec_from_file_location(module_name, source)
        if spec is None or spec.loader is None:
            raise AssemblyLoadError(f"Cannot import {assembly.assembly_filename}")

        module = importlib.util.module_from_spec(spec)
        setattr(module, ASSEMBLY_MODULE_ATTR, True)
        sys.modules[module_name] = module
        try:
            await asyncio.to_thread(spec.loader.exec_module, module)
        except _PROPAGATED:
            sys.modules.pop(module_name, None)
            raise
        except BaseException as e:
            sys.modules.pop(module_name, None)
            raise AssemblyLoadError(
                f"Cannot import {assembly.assembly_filename}: "
                f"{_exception_name(e)}: {e}"
            ) from e
        return module

    def _add_function(self, module: ModuleType, function: Callable[..., Any]) -> TestCase:
        test_case = TestCase(
            unique_id=f"{module.__name__}::{function.__name__}",
            display_name=f"{module.__name__}.{function.__name__}",
            class_name=module.__name__,
            method_name=function.__name__,
            collection=module.__name__,
            traits=get_traits(function),
            skip_reason=get_skip_reason(function),
        )
        self._entries[test_case.unique_id] = _TestEntry(function=function)
        return test_case

    def _add_class(self, owner: type) -> list[TestCase]:
        class_name = f"{owner.__module__}.{owner.__qualname__}"
        methods: dict[str, Callable[..., Any]] = {}
        for klass in reversed(owner.__mro__):
            for name, member in vars(klass).items():
                if inspect.isfunction(member) and name.startswith(
                    self.config.function_prefix
                ):
                    methods[name] = member

        class_traits = get_traits(owner)
        test_cases: list[TestCase] = []
        for name, method in methods.items():
            traits = {key: list(values) for key, values in class_traits.items()}
            for key, values in get_traits(method).items():
                traits.setdefault(key, []).extend(values)

            test_case = TestCase(
                unique_id=f"{class_name}::{name}",
                display_name=f"{class_name}.{name}",
                class_name=class_name,
                method_name=name,
                collection=class_name,
                traits=traits,
                skip_reason=get_skip_reason(method) or get_skip_reason(owner),
            )
            self._entries[test_case.unique_id] = _TestEntry(function=method, owner=owner)
            test_cases.append(test_case)
        return test_cases

    async def _run_limited(
        self,
        limit: asyncio.Semaphore | None,
        cases: Sequence[TestCase],
        sink: EventSink,
    ) -> None:
        if limit is None:
            await self._run_collection(cases, sink)
            return
        async with limit:
            await self._run_collection(cases, sink)

    async def _run_collection(self, cases: Sequence[TestCase], sink: EventSink) -> None:
        owner = self._entries[cases[0].unique_id].owner
        runnable = any(case.skip_reason is None for case in cases)

        setup_error: BaseException | None = None
        if owner is not None and runnable and hasattr(owner, "setup_class"):
            try:
                await _invoke(owner.setup_class)
            except _PROPAGATED:
                raise
            except BaseException as e:
                setup_error = e

        for case in cases:
            if case.skip_reason is not None:
                sink(TestSkipped(test_case=case, reason=case.skip_reason))
                continue

            sink(TestStarting(test_case=case))
            if setup_error is not None:
                sink(_failure(case, setup_error, 0.0))
            else:
                sink(await self._run_test(case))

        if owner is not None and runnable and hasattr(owner, "teardown_class"):
            try:
                await _invoke(owner.teardown_class)
            except _PROPAGATED:
                raise
            except BaseException as e:
                sink(
                    ErrorOccurred(
                        source=f"Class Cleanup ({cases[0].class_name})",
                        exception_type=_exception_name(e),
                        message=str(e),
                        stack_trace="".join(traceback.format_exception(e)),
                    )
                )

    async def _run_test(self, case: TestCase) -> TestPassed | TestFailed:
        entry = self._entries[case.unique_id]
        started = time.perf_counter()
        try:
            if entry.owner is None:
                target = entry.function
            else:
                target = getattr(entry.owner(), entry.function.__name__)
            await _invoke(target)
        except _PROPAGATED:
            raise
        except BaseException as e:
            return _failure(case, e, time.perf_counter() - started)
        return TestPassed(test_case=case, execution_time=time.perf_counter() - started)


async def _invoke(target: Callable[[], Any]) -> None:
    if inspect.iscoroutinefunction(target):
        await target()
    else:
        await asyncio.to_thread(target)


def _failure(case: TestCase, error: BaseException, execution_time: float) -> TestFailed:
    return TestFailed(
        test_case=case,
        execution_time=execution_time,
        exception_type=_exception_name(error),
        message=str(error),
        stack_trace="".join(traceback.format_exception(error)),
    )


def _exception_name(error: BaseException) -> str:
    error_type = type(error)
    if error_type.__module__ == "builtins":
        return error_type.__qualname__
    return f"{error_type.__module__}.{error_type.__qualname__}"


def _describe_environment(options: ExecutionOptions) -> str:
    if options.disable_parallelization:
        parallelism = "non-parallel"
    elif options.max_threads > 0:
        parallelism = f"parallel ({options.max_threads} threads)"
    else:
        parallelism = "parallel (unbounded)"
    bits = 64 if sys.maxsize > 2**32 else 32
    return (
        f"{bits}-bit Python {platform.python_version()} "
        f"[collection-per-class, {parallelism}]"
    )
