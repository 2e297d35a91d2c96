"""Models for the in-memory project produced by the command-line parser."""

from collections.abc import Mapping, Sequence
from pathlib import Path

from pydantic import Field

from assembly_runner.models.base import Model


class AssemblyRef(Model):
    """A test container to run, referenced by absolute path."""

    assembly_filename: Path = Field(..., description="Absolute path to the assembly")
    config_filename: Path | None = Field(
        default=None, description="Optional engine config file for this assembly"
    )
    shadow_copy: bool = Field(
        default=True, description="Load the assembly from a temporary copy"
    )
    name: str | None = Field(
        default=None, description="Display name when the file stem is ambiguous"
    )

    @property
    def display_name(self) -> str:
        """Assembly name without directory or extension, unless overridden."""
        return self.name or self.assembly_filename.stem


type TraitFilterSet = Mapping[str, frozenset[str]]


class Filters(Model):
    """Conjunction of trait inclusion, trait exclusion and name constraints.

    Within a trait filter set, values under one name are OR-combined. Every
    name filter set left empty places no constraint on its dimension.
    """

    included_traits: TraitFilterSet = Field(default_factory=dict)
    excluded_traits: TraitFilterSet = Field(default_factory=dict)
    included_classes: frozenset[str] = Field(default_factory=frozenset)
    included_methods: frozenset[str] = Field(default_factory=frozenset)
    included_names: frozenset[str] = Field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        """Whether no dimension constrains the run."""
        return not (
            self.included_traits
            or self.excluded_traits
            or self.included_classes
            or self.included_methods
            or self.included_names
        )


class OutputTransform(Model):
    """A requested post-run transform: format key and destination path."""

    key: str = Field(..., description="Transform code, e.g. 'xml'")
    value: str = Field(..., description="Destination filename")


class Project(Model):
    """Assemblies to run, shared filters and requested output transforms."""

    assemblies: Sequence[AssemblyRef] = Field(default_factory=tuple)
    filters: Filters = Field(default_factory=Filters)
    output: Sequence[OutputTransform] = Field(default_factory=tuple)


class CommandLine(Model):
    """Parsed command line: the project plus process-wide run options."""

    project: Project
    engine: str = "python"
    max_parallel_threads: int = 0
    parallelize_test_collections: bool = True
    teamcity: bool = False
    wait: bool = False
    design_time: bool = False
    list_tests: bool = False
