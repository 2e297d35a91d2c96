"""Structured result tree built from lifecycle events."""

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from assembly_runner.models.events import (
    AssemblyStarted,
    ErrorOccurred,
    TestFailed,
    TestPassed,
    TestResultEvent,
    TestSkipped,
)
from assembly_runner.models.result import ExecutionSummary

RESULT_NAMES = {TestPassed: "Pass", TestFailed: "Fail", TestSkipped: "Skip"}

# Characters outside the XML 1.0 Char production.
_INVALID_XML_CHARS = re.compile(
    "[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]"
)


@dataclass(kw_only=True)
class _CollectionCounts:
    element: ET.Element
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    time: float = 0.0


@dataclass(kw_only=True)
class AssemblyTreeBuilder:
    """Appends ``<collection>`` and ``<test>`` nodes under one ``<assembly>``.

    Only the reporter owning the assembly mutates the element.
    """

    element: ET.Element
    _collections: dict[str, _CollectionCounts] = field(default_factory=dict)
    _errors: ET.Element | None = None

    def start(self, event: AssemblyStarted) -> None:
        self.element.set("name", xml_text(str(event.assembly.assembly_filename)))
        config = event.assembly.config_filename
        self.element.set("config-file", xml_text(str(config)) if config else "")
        self.element.set("test-framework", event.test_framework)
        self.element.set("environment", xml_text(event.environment))
        self.element.set("run-date", event.start_time.strftime("%Y-%m-%d"))
        self.element.set("run-time", event.start_time.strftime("%H:%M:%S"))
        self._errors = ET.SubElement(self.element, "errors")

    def add_result(self, event: TestResultEvent) -> None:
        test_case = event.test_case
        counts = self._collection(test_case.collection)
        counts.total += 1

        test = ET.SubElement(
            counts.element,
            "test",
            name=xml_text(test_case.display_name),
            type=xml_text(test_case.class_name),
            method=xml_text(test_case.method_name),
            result=RESULT_NAMES[type(event)],
        )

        match event:
            case TestPassed():
                counts.passed += 1
                counts.time += event.execution_time
                test.set("time", f"{event.execution_time:.7f}")
                _add_output(test, event.output)
            case TestFailed():
                counts.failed += 1
                counts.time += event.execution_time
                test.set("time", f"{event.execution_time:.7f}")
                _add_output(test, event.output)
                _add_failure(test, event.exception_type, event.message, event.stack_trace)
            case TestSkipped():
                counts.skipped += 1
                test.set("time", "0")
                ET.SubElement(test, "reason").text = xml_text(event.reason)

        if test_case.traits:
            traits = ET.SubElement(test, "traits")
            for name, values in test_case.traits.items():
                for value in values:
                    ET.SubElement(
                        traits, "trait", name=xml_text(name), value=xml_text(value)
                    )

    def add_error(self, event: ErrorOccurred) -> None:
        if self._errors is None:
            self._errors = ET.SubElement(self.element, "errors")
        error = ET.SubElement(
            self._errors, "error", type="error", name=xml_text(event.source)
        )
        _add_failure(error, event.exception_type, event.message, event.stack_trace)

    def finish(self, summary: ExecutionSummary) -> None:
        for counts in self._collections.values():
            counts.element.set("total", str(counts.total))
            counts.element.set("passed", str(counts.passed))
            counts.element.set("failed", str(counts.failed))
            counts.element.set("skipped", str(counts.skipped))
            counts.element.set("time", f"{counts.time:.3f}")

        passed = summary.total - summary.failed - summary.skipped
        self.element.set("total", str(summary.total))
        self.element.set("passed", str(passed))
        self.element.set("failed", str(summary.failed))
        self.element.set("skipped", str(summary.skipped))
        self.element.set("errors", str(summary.errors))
        self.element.set("time", f"{summary.time:.3f}")

    def _collection(self, name: str) -> _CollectionCounts:
        if name not in self._collections:
            element = ET.SubElement(self.element, "collection", name=xml_text(name))
            self._collections[name] = _CollectionCounts(element=element)
        return self._collections[name]


def _add_output(parent: ET.Element, output: str) -> None:
    if output:
        ET.SubElement(parent, "output").text = xml_text(output)


def _add_failure(
    parent: ET.Element, exception_type: str, message: str, stack_trace: str
) -> None:
    failure = ET.SubElement(
        parent, "failure", {"exception-type": xml_text(exception_type)}
    )
    ET.SubElement(failure, "message").text = xml_text(message)
    if stack_trace:
        ET.SubElement(failure, "stack-trace").text = xml_text(stack_trace)


def xml_text(value: str) -> str:
    """Replace characters XML cannot carry with ``\\xNN``/``\\uNNNN`` escapes."""
    return _INVALID_XML_CHARS.sub(_escape_char, value)


def _escape_char(match: re.Match[str]) -> str:
    code = ord(match.group())
    return f"\\x{code:02x}" if code <= 0xFF else f"\\u{code:04x}"
