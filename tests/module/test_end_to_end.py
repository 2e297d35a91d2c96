"""End-to-end tests running the CLI on real assembly files."""

import json
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from assembly_runner.cli import main


def run_main(*args: str) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(list(args))
    code = exc_info.value.code
    assert isinstance(code, int)
    return code


def test_runs_assemblies_and_reports_summary(
    alpha: Path, beta: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Exit code is the failed test count across every assembly."""
    exit_code = run_main(str(alpha), str(beta))

    assert exit_code == 2
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("assembly-runner ")
    for name in ("e2e_alpha", "e2e_beta"):
        assert f"Discovering: {name}" in lines
        assert f"Discovered:  {name}" in lines
        assert f"Starting:    {name}" in lines
        assert f"Finished:    {name}" in lines
    assert "   e2e_alpha.test_fail_0 [FAIL]" in lines
    assert "      AssertionError : nope" in lines
    assert "   e2e_beta.TestLater.test_pending [SKIP]" in lines
    assert "      not implemented" in lines

    assert "=== TEST EXECUTION SUMMARY ===" in lines
    assert lines[-3].startswith("   e2e_alpha     Total: 10, Errors: 0, Failed: 2,")
    assert lines[-2].startswith("   e2e_beta      Total:  6, Errors: 0, Failed: 0,")
    assert lines[-1].startswith("   GRAND TOTAL:  Total: 16, Errors: 0, Failed: 2,")


def test_filters_by_trait(beta: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Only tests carrying the requested trait run."""
    exit_code = run_main(str(beta), "-trait", "category=FAST")

    assert exit_code == 0
    summary = capsys.readouterr().out.splitlines()[-1]
    assert summary.startswith("   GRAND TOTAL:  Total: 2, Errors: 0, Failed: 0,")


def test_excludes_by_trait(alpha: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Excluded failing tests no longer fail the run."""
    exit_code = run_main(str(alpha), "-notrait", "category=broken")

    assert exit_code == 0
    assert "[FAIL]" not in capsys.readouterr().out


def test_filters_by_class_and_method(
    beta: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Class and method filters combine as alternatives."""
    exit_code = run_main(
        str(beta),
        "-class",
        "e2e_beta.TestFast",
        "-method",
        "e2e_beta.TestSlow.test_four",
        "-list",
    )

    assert exit_code == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[-3:] == [
        "e2e_beta.TestFast.test_one",
        "e2e_beta.TestFast.test_two",
        "e2e_beta.TestSlow.test_four",
    ]


def test_writes_xml_and_json(
    alpha: Path, beta: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Requested transforms are written after the run."""
    xml_path = tmp_path / "out" / "results.xml"
    xml_path.parent.mkdir()
    json_path = tmp_path / "results.json"

    exit_code = run_main(
        str(alpha),
        str(beta),
        "-xml",
        str(xml_path),
        "-json",
        str(json_path),
        "-parallel",
        "none",
    )

    assert exit_code == 2
    root = ET.parse(xml_path).getroot()
    assemblies = root.findall("assembly")
    assert [a.get("name") for a in assemblies] == [str(alpha), str(beta)]
    assert [a.get("total") for a in assemblies] == ["10", "6"]
    assert assemblies[0].get("test-framework") == "python-module"
    assert "non-parallel" in (assemblies[0].get("environment") or "")
    assert {c.get("name") for c in assemblies[1].iter("collection")} == {
        "e2e_beta.TestFast",
        "e2e_beta.TestSlow",
        "e2e_beta.TestLater",
    }

    data = json.loads(json_path.read_text(encoding="utf-8"))
    assert [a["failed"] for a in data["assemblies"]] == [2, 0]
    assert [a["skipped"] for a in data["assemblies"]] == [0, 1]


def test_teamcity_output(beta: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """TeamCity mode writes service messages instead of console blocks."""
    exit_code = run_main(str(beta), "-teamcity")

    assert exit_code == 0
    out = capsys.readouterr().out
    assert "##teamcity[testSuiteStarted name='e2e_beta' flowId='e2e_beta']" in out
    assert (
        "##teamcity[testIgnored name='e2e_beta.TestLater.test_pending' "
        "message='not implemented' flowId='e2e_beta.TestLater']"
    ) in out
    assert "Starting:" not in out


def test_teamcity_detected_from_environment(
    beta: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    """A TeamCity build environment switches on TeamCity output."""
    monkeypatch.setenv("TEAMCITY_PROJECT_NAME", "project")

    run_main(str(beta))

    assert "##teamcity[testSuiteFinished" in capsys.readouterr().out


def test_design_time_output(alpha: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Design-time mode writes only JSON after the banner."""
    exit_code = run_main(str(alpha), "-designtime")

    assert exit_code == 2
    lines = capsys.readouterr().out.splitlines()
    messages = [json.loads(line) for line in lines[2:]]
    assert messages[0] == {"type": "assembly-started", "assembly": "e2e_alpha"}
    assert messages[-1]["type"] == "assembly-finished"
    outcomes = [m["outcome"] for m in messages if m["type"] == "test-result"]
    assert outcomes.count("failed") == 2
    assert outcomes.count("passed") == 8


def test_config_file_applies_to_assembly(
    check: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """The engine is configured from the assembly's config file."""
    config_path = tmp_path / "check.yaml"
    config_path.write_text("function_prefix: check\n")

    exit_code = run_main(str(check), "-configfile", str(config_path), "-list")

    assert exit_code == 0
    assert capsys.readouterr().out.splitlines()[-1] == "e2e_check.check_custom"


def test_invalid_config_file_fails_assembly(
    check: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """An invalid config file fails only that assembly."""
    config_path = tmp_path / "check.yaml"
    config_path.write_text("no_such_option: 1\n")

    exit_code = run_main(str(check), "-configfile", str(config_path))

    assert exit_code == 1
    assert "ConfigFileError: Invalid config file" in capsys.readouterr().out


def test_missing_assembly_fails_run(
    beta: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """A missing assembly fails the run while the others still execute."""
    missing = tmp_path / "missing.py"

    exit_code = run_main(str(missing), str(beta))

    assert exit_code == 1
    lines = capsys.readouterr().out.splitlines()
    assert any(line.startswith("AssemblyLoadError: Assembly not found") for line in lines)
    assert "Finished:    e2e_beta" in lines


def test_same_stem_assemblies_report_separately(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Failures in one of two same-named files still fail the run."""
    failing = tmp_path / "a" / "e2e_twin.py"
    passing = tmp_path / "b" / "e2e_twin.py"
    for path, body in ((failing, "assert False"), (passing, "pass")):
        path.parent.mkdir()
        path.write_text(f"def test_twin():\n    {body}\n")

    exit_code = run_main(str(failing), str(passing))

    assert exit_code == 1
    lines = capsys.readouterr().out.splitlines()
    assert "Finished:    e2e_twin" in lines
    assert "Finished:    e2e_twin#2" in lines
    assert lines[-3].startswith("   e2e_twin      Total: 1, Errors: 0, Failed: 1,")
    assert lines[-2].startswith("   e2e_twin#2    Total: 1, Errors: 0, Failed: 0,")


def test_exiting_test_fails_without_stopping_run(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """sys.exit and terminal colour codes inside tests still give a full report."""
    assembly = tmp_path / "e2e_exit.py"
    assembly.write_text(
        "import sys\n"
        "\n"
        "\n"
        "def test_exits():\n"
        "    sys.exit(7)\n"
        "\n"
        "\n"
        "def test_coloured():\n"
        "    raise AssertionError('\\x1b[31mred\\x1b[0m')\n"
        "\n"
        "\n"
        "def test_passes():\n"
        "    pass\n"
    )
    xml_path = tmp_path / "results.xml"

    exit_code = run_main(str(assembly), "-xml", str(xml_path))

    assert exit_code == 2
    assert "=== TEST EXECUTION SUMMARY ===" in capsys.readouterr().out
    root = ET.parse(xml_path).getroot()
    results = {t.get("method"): t for t in root.iter("test")}
    assert results["test_exits"].find("failure").get("exception-type") == "SystemExit"
    assert results["test_coloured"].findtext("failure/message") == "\\x1b[31mred\\x1b[0m"
    assert results["test_passes"].get("result") == "Pass"
