"""Shared fixtures for reporter tests."""

import io
from datetime import datetime
from pathlib import Path

import pytest

from assembly_runner.models.events import AssemblyStarted
from assembly_runner.models.project import AssemblyRef
from assembly_runner.models.test_case import TestCase
from assembly_runner.run_context import RunContext
from assembly_runner.testing.factories import TestCaseFactory


@pytest.fixture
def stream() -> io.StringIO:
    """Captured reporter output."""
    return io.StringIO()


@pytest.fixture
def context(stream: io.StringIO) -> RunContext:
    """Run context writing to the captured stream."""
    return RunContext(stream=stream)


@pytest.fixture
def assembly() -> AssemblyRef:
    """Assembly reference with a config file."""
    return AssemblyRef(
        assembly_filename=Path("/work/sample_math.py"),
        config_filename=Path("/work/sample_math.yaml"),
    )


@pytest.fixture
def started(assembly: AssemblyRef) -> AssemblyStarted:
    """Start event for the sample assembly."""
    return AssemblyStarted(
        assembly=assembly,
        test_framework="python-module",
        environment="64-bit Python 3.12.0 [collection-per-class, non-parallel]",
        start_time=datetime(2024, 3, 5, 14, 30, 15),
    )


@pytest.fixture
def test_case() -> TestCase:
    """A test case in the ``sample_math.TestMath`` collection."""
    return TestCaseFactory.build(
        unique_id="sample_math.TestMath::test_add",
        display_name="sample_math.TestMath.test_add",
        class_name="sample_math.TestMath",
        method_name="test_add",
        collection="sample_math.TestMath",
    )
