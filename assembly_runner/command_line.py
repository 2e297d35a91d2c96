"""Command-line parsing into a project and process-wide run options."""

import os
from collections import defaultdict, deque
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from assembly_runner.models.project import (
    AssemblyRef,
    CommandLine,
    Filters,
    OutputTransform,
    Project,
)
from assembly_runner.transforms import TRANSFORMS

TEAMCITY_ENV_VAR = "TEAMCITY_PROJECT_NAME"

PARALLEL_OPTIONS: Mapping[str, bool] = {
    "none": False,
    "collections": True,
    "all": True,
}

TEST_NAME_OPTIONS = frozenset({"testname", "test"})


class ArgumentError(ValueError):
    """Raised when the command line is malformed."""


def needs_usage(args: Sequence[str]) -> bool:
    """Whether the arguments ask for usage text instead of a run."""
    return not args or args[0] == "-?"


@dataclass(kw_only=True)
class _PendingAssembly:
    path: Path
    config: Path | None = None


@dataclass(kw_only=True)
class _ParseState:
    """Mutable accumulators, frozen into a CommandLine once parsing ends."""

    assemblies: list[_PendingAssembly] = field(default_factory=list)
    included_traits: defaultdict[str, set[str]] = field(
        default_factory=lambda: defaultdict(set)
    )
    excluded_traits: defaultdict[str, set[str]] = field(
        default_factory=lambda: defaultdict(set)
    )
    classes: set[str] = field(default_factory=set)
    methods: set[str] = field(default_factory=set)
    names: set[str] = field(default_factory=set)
    output: list[OutputTransform] = field(default_factory=list)
    engine: str = "python"
    max_parallel_threads: int = 0
    parallelize_test_collections: bool = True
    shadow_copy: bool = True
    teamcity: bool = False
    wait: bool = False
    design_time: bool = False
    list_tests: bool = False

    def build(self) -> CommandLine:
        names = _unique_names([pending.path for pending in self.assemblies])
        project = Project(
            assemblies=tuple(
                AssemblyRef(
                    assembly_filename=pending.path,
                    config_filename=pending.config,
                    shadow_copy=self.shadow_copy,
                    name=None if name == pending.path.stem else name,
                )
                for pending, name in zip(self.assemblies, names, strict=True)
            ),
            filters=Filters(
                included_traits=_freeze(self.included_traits),
                excluded_traits=_freeze(self.excluded_traits),
                included_classes=frozenset(self.classes),
                included_methods=frozenset(self.methods),
                included_names=frozenset(self.names),
            ),
            output=tuple(self.output),
        )
        return CommandLine(
            project=project,
            engine=self.engine,
            max_parallel_threads=self.max_parallel_threads,
            parallelize_test_collections=self.parallelize_test_collections,
            teamcity=self.teamcity,
            wait=self.wait,
            design_time=self.design_time,
            list_tests=self.list_tests,
        )


def parse_command_line(
    args: Sequence[str], environ: Mapping[str, str] | None = None
) -> CommandLine:
    """Parse raw arguments into a CommandLine.

    Bare tokens are assembly paths, resolved to absolute form. Option names
    match case-insensitively and may start with ``-`` or ``--``.

    Args:
        args: Raw argument tokens, without the program name
        environ: Environment used for CI detection (default: ``os.environ``)

    Returns:
        The parsed command line

    Raises:
        ArgumentError: If any token is invalid; no partial result is returned

    """
    if environ is None:
        environ = os.environ

    state = _ParseState(teamcity=bool(environ.get(TEAMCITY_ENV_VAR)))
    tokens = deque(args)

    while tokens:
        token = tokens.popleft()
        if not token.startswith("-"):
            state.assemblies.append(
                _PendingAssembly(path=Path(os.path.abspath(token)))
            )
            continue

        option = token.lstrip("-").lower()
        _apply_option(state, option, tokens)

    if not state.assemblies:
        raise ArgumentError("must specify at least one assembly")

    return state.build()


def _apply_option(state: _ParseState, option: str, tokens: deque[str]) -> None:
    """Apply a single option, consuming its value from ``tokens`` if any."""
    if option == "noshadow":
        state.shadow_copy = False
    elif option == "teamcity":
        state.teamcity = True
    elif option == "wait":
        state.wait = True
    elif option == "designtime":
        state.design_time = True
    elif option == "list":
        state.list_tests = True
    elif option == "maxthreads":
        value = _require_value(tokens, "missing argument for -maxthreads")
        state.max_parallel_threads = _parse_thread_count(value)
    elif option == "parallel":
        value = _require_value(tokens, "missing argument for -parallel")
        try:
            state.parallelize_test_collections = PARALLEL_OPTIONS[value.lower()]
        except KeyError:
            raise ArgumentError("incorrect argument value for -parallel") from None
    elif option in ("trait", "notrait"):
        value = _require_value(tokens, f"missing argument for -{option}")
        name, trait_value = _parse_trait(option, value)
        target = state.included_traits if option == "trait" else state.excluded_traits
        target[name].add(trait_value)
    elif option in TEST_NAME_OPTIONS:
        state.names.add(_require_value(tokens, f"missing argument for -{option}"))
    elif option == "class":
        state.classes.add(_require_value(tokens, "missing argument for -class"))
    elif option == "method":
        state.methods.add(_require_value(tokens, "missing argument for -method"))
    elif option == "engine":
        state.engine = _require_value(tokens, "missing argument for -engine")
    elif option == "configfile":
        value = _require_value(tokens, "missing argument for -configfile")
        if not state.assemblies:
            raise ArgumentError("-configfile must follow an assembly")
        state.assemblies[-1].config = Path(os.path.abspath(value))
    elif option in TRANSFORMS:
        value = _require_value(tokens, f"missing filename for -{option}")
        state.output.append(OutputTransform(key=option, value=value))
    else:
        raise ArgumentError(f"unknown option: -{option}")


def _require_value(tokens: deque[str], message: str) -> str:
    if not tokens or tokens[0].startswith("-"):
        raise ArgumentError(message)
    return tokens.popleft()


def _parse_thread_count(value: str) -> int:
    try:
        count = int(value)
    except ValueError:
        raise ArgumentError("incorrect argument value for -maxthreads") from None
    if count < 0:
        raise ArgumentError("incorrect argument value for -maxthreads")
    return count


def _parse_trait(option: str, value: str) -> tuple[str, str]:
    pieces = value.split("=")
    if len(pieces) != 2 or not pieces[0] or not pieces[1]:
        raise ArgumentError(
            f'incorrect argument format for -{option} (should be "name=value")'
        )
    return pieces[0], pieces[1]


def _freeze(traits: Mapping[str, set[str]]) -> dict[str, frozenset[str]]:
    return {name: frozenset(values) for name, values in traits.items()}


def _unique_names(paths: Sequence[Path]) -> list[str]:
    """Name each assembly by its file stem, suffixing repeats with ``#2``, ``#3``..."""
    used: set[str] = set()
    names = []
    for path in paths:
        name, count = path.stem, 1
        while name in used:
            count += 1
            name = f"{path.stem}#{count}"
        used.add(name)
        names.append(name)
    return names
