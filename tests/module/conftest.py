"""Fixtures for module tests running the CLI against real assembly files."""

import sys
from collections.abc import Generator
from pathlib import Path

import pytest

ALPHA_PASSING = 8
ALPHA_FAILING = 2
BETA_PASSING = 5


def _alpha_source() -> str:
    lines = ["from assembly_runner.markers import trait", ""]
    for i in range(ALPHA_PASSING):
        lines += ["", f"def test_pass_{i}():", "    pass", ""]
    for i in range(ALPHA_FAILING):
        lines += [
            "",
            '@trait("category", "broken")',
            f"def test_fail_{i}():",
            '    assert False, "nope"',
            "",
        ]
    return "\n".join(lines)


BETA_SOURCE = """
from assembly_runner.markers import skip, trait


@trait("category", "fast")
class TestFast:
    def test_one(self):
        pass

    def test_two(self):
        pass


class TestSlow:
    def test_three(self):
        pass

    async def test_four(self):
        pass

    def test_five(self):
        pass


class TestLater:
    @skip("not implemented")
    def test_pending(self):
        pass
"""

CHECK_SOURCE = """
def check_custom():
    pass


def test_default_prefix():
    raise AssertionError("should not run")
"""


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None]:
    """Disable CI detection and forget imported assemblies afterwards."""
    monkeypatch.delenv("TEAMCITY_PROJECT_NAME", raising=False)
    yield
    for name in ("e2e_alpha", "e2e_beta", "e2e_check", "e2e_twin", "e2e_exit"):
        sys.modules.pop(name, None)


@pytest.fixture
def alpha(tmp_path: Path) -> Path:
    """Assembly with 10 module-level tests, 2 of them failing."""
    path = tmp_path / "e2e_alpha.py"
    path.write_text(_alpha_source())
    return path


@pytest.fixture
def beta(tmp_path: Path) -> Path:
    """Assembly with 5 passing class tests and 1 skipped test."""
    path = tmp_path / "e2e_beta.py"
    path.write_text(BETA_SOURCE)
    return path


@pytest.fixture
def check(tmp_path: Path) -> Path:
    """Assembly using a custom test function prefix."""
    path = tmp_path / "e2e_check.py"
    path.write_text(CHECK_SOURCE)
    return path
