"""CLI entry point for the assembly test runner."""

import asyncio
import logging
import platform
import signal
import sys
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError, version
from typing import Any

from assembly_runner.command_line import ArgumentError, needs_usage, parse_command_line
from assembly_runner.config_loader import load_engine_config
from assembly_runner.engines.base import ExecutionOptions, TestEngine
from assembly_runner.engines.loading import EngineNotFoundError, load_engine_manifest
from assembly_runner.engines.manifest import EngineManifest
from assembly_runner.models.project import AssemblyRef, CommandLine
from assembly_runner.orchestrator import EngineFactory, TestOrchestrator
from assembly_runner.reporters import ReporterKind
from assembly_runner.run_context import RunContext
from assembly_runner.transforms import TRANSFORMS

log = logging.getLogger("assembly_runner")

# Process exit statuses keep only the low 8 bits.
MAX_EXIT_STATUS = 255

USAGE = """\
usage: assembly-runner <assembly> [<assembly>...] [options]

Valid options:
  -parallel option       : set parallelization based on option
                         :   none - turn off all parallelization
                         :   collections - only parallelize collections
                         :   all - parallelize collections
  -maxthreads count      : maximum thread count for collection parallelization
                         :   0 - run with unbounded thread count
                         :   >0 - limit task thread pool size to 'count'
  -noshadow              : do not shadow copy assemblies
  -configfile path       : engine config file for the preceding assembly
  -engine key            : test engine to use (default: python)
  -teamcity              : forces TeamCity mode (normally auto-detected)
  -wait                  : wait for input after completion
  -trait "name=value"    : only run tests with matching name/value traits
                         : if specified more than once, acts as an OR operation
  -notrait "name=value"  : do not run tests with matching name/value traits
                         : if specified more than once, acts as an AND operation
  -class "name"          : run all methods in a given test class
                         : if specified more than once, acts as an OR operation
  -method "name"         : run a given test method
                         : if specified more than once, acts as an OR operation
  -testname "name"       : run tests with matching name (alias: -test)
                         : if specified more than once, acts as an OR operation
  -designtime            : report results as JSON lines for IDE hosts
  -list                  : list matching tests instead of running them"""


def tool_version() -> str:
    try:
        return version("assembly-runner")
    except PackageNotFoundError:
        return "0.0.0-dev"


def banner() -> str:
    bits = 64 if sys.maxsize > 2**32 else 32
    return (
        f"assembly-runner {tool_version()} "
        f"({bits}-bit Python {platform.python_version()})"
    )


def print_usage() -> None:
    """Print option help, including one row per registered transform."""
    print(USAGE)
    for entry in TRANSFORMS.values():
        print(entry.usage)


def reporter_kind_for(command_line: CommandLine) -> ReporterKind:
    if command_line.design_time:
        return "design-time"
    if command_line.teamcity:
        return "teamcity"
    return "console"


def engine_factory_for(manifest: EngineManifest[Any]) -> EngineFactory:
    """Open a configured engine per assembly from an engine manifest."""

    @asynccontextmanager
    async def open_engine(assembly: AssemblyRef) -> AsyncGenerator[TestEngine, None]:
        config = await load_engine_config(manifest.config_cls, assembly)
        async with manifest.engine_factory(config) as engine:
            yield engine

    return open_engine


def install_cancel_handler(context: RunContext) -> None:
    """Turn the first Ctrl+C into a cooperative cancellation request.

    The handler removes itself, so a second Ctrl+C raises KeyboardInterrupt.
    """
    loop = asyncio.get_running_loop()

    def on_interrupt() -> None:
        if context.request_cancel():
            context.write_lines("Canceling... (Press Ctrl+C again to terminate)")
        loop.remove_signal_handler(signal.SIGINT)

    try:
        loop.add_signal_handler(signal.SIGINT, on_interrupt)
    except (NotImplementedError, RuntimeError):
        log.debug("SIGINT handler unavailable, cancellation disabled")


async def run(command_line: CommandLine, context: RunContext) -> int:
    """Run the parsed command line and return the exit code."""
    log.info("Loading engine: %s", command_line.engine)
    manifest = load_engine_manifest(command_line.engine)

    install_cancel_handler(context)

    orchestrator = TestOrchestrator(
        engine_factory=engine_factory_for(manifest),
        context=context,
        reporter_kind=reporter_kind_for(command_line),
        options=ExecutionOptions(
            disable_parallelization=not command_line.parallelize_test_collections,
            max_threads=command_line.max_parallel_threads,
        ),
        list_tests=command_line.list_tests,
    )

    log.info("Running %d assembly(ies)...", len(command_line.project.assemblies))
    return await orchestrator.run(command_line.project)


def wait_for_enter() -> None:
    print()
    try:
        input("Press ENTER to continue...")
    except EOFError:
        log.debug("stdin is closed, not waiting")
    print()


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    args = list(sys.argv[1:] if argv is None else argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    print(banner())
    print()

    if needs_usage(args):
        print_usage()
        sys.exit(1)

    try:
        command_line = parse_command_line(args)
        exit_code = asyncio.run(run(command_line, RunContext()))
    except (ArgumentError, EngineNotFoundError) as e:
        print(f"error: {e}")
        sys.exit(1)
    except Exception:
        log.exception("Unhandled error during test run")
        sys.exit(1)

    if command_line.wait:
        wait_for_enter()

    sys.exit(min(exit_code, MAX_EXIT_STATUS))


if __name__ == "__main__":  # pragma: no cover
    main()
