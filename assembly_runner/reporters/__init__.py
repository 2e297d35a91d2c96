"""Result reporters: console, TeamCity and design-time variants."""

import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Literal

from assembly_runner.models.project import AssemblyRef
from assembly_runner.reporters.base import ResultReporter
from assembly_runner.reporters.console import ConsoleReporter
from assembly_runner.reporters.design_time import DesignTimeReporter
from assembly_runner.reporters.teamcity import TeamCityReporter
from assembly_runner.run_context import RunContext

type ReporterKind = Literal["console", "teamcity", "design-time"]

REPORTERS: Mapping[ReporterKind, type[ResultReporter]] = {
    "console": ConsoleReporter,
    "teamcity": TeamCityReporter,
    "design-time": DesignTimeReporter,
}


def create_reporter(
    kind: ReporterKind,
    assembly: AssemblyRef,
    context: RunContext,
    assembly_element: ET.Element | None = None,
) -> ResultReporter:
    """Create the reporter variant chosen for the run, bound to one assembly."""
    return REPORTERS[kind](
        assembly=assembly, context=context, assembly_element=assembly_element
    )


__all__ = [
    "ConsoleReporter",
    "DesignTimeReporter",
    "REPORTERS",
    "ReporterKind",
    "ResultReporter",
    "TeamCityReporter",
    "create_reporter",
]
