"""Registry of output transforms applied to the structured result tree."""

import json
import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from assembly_runner.models.project import OutputTransform

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class TransformEntry:
    """A known transform: its command-line code, help text and writer."""

    key: str
    description: str
    apply: Callable[[ET.Element, Path], None]

    @property
    def usage(self) -> str:
        """Usage row for this transform, aligned with the other options."""
        flag = f"-{self.key} <filename>".ljust(22)[:22]
        return f"  {flag} : {self.description}"


def write_xml(tree: ET.Element, destination: Path) -> None:
    """Write the result tree as an XML document."""
    document = ET.ElementTree(tree)
    ET.indent(document)
    document.write(destination, encoding="utf-8", xml_declaration=True)


def write_json(tree: ET.Element, destination: Path) -> None:
    """Write per-assembly totals and test results as a JSON document."""
    destination.write_text(json.dumps(format_tree(tree), indent=2), encoding="utf-8")


def format_tree(tree: ET.Element) -> dict[str, Any]:
    """Convert the result tree into JSON-serializable data."""
    assemblies: list[dict[str, Any]] = []
    for assembly in tree.iter("assembly"):
        tests: list[dict[str, Any]] = []
        for collection in assembly.iter("collection"):
            for test in collection.iter("test"):
                failure_message = test.findtext("failure/message")
                tests.append(
                    {
                        "name": test.get("name"),
                        "collection": collection.get("name"),
                        "result": test.get("result"),
                        "time": float(test.get("time", "0")),
                        "message": failure_message or test.findtext("reason"),
                    }
                )
        assemblies.append(
            {
                "name": assembly.get("name"),
                "total": int(assembly.get("total", "0")),
                "passed": int(assembly.get("passed", "0")),
                "failed": int(assembly.get("failed", "0")),
                "skipped": int(assembly.get("skipped", "0")),
                "errors": int(assembly.get("errors", "0")),
                "time": float(assembly.get("time", "0")),
                "tests": tests,
            }
        )
    return {"assemblies": assemblies}


TRANSFORMS: Mapping[str, TransformEntry] = {
    entry.key: entry
    for entry in (
        TransformEntry(
            key="xml",
            description="output results to XML file",
            apply=write_xml,
        ),
        TransformEntry(
            key="json",
            description="output results to JSON file",
            apply=write_json,
        ),
    )
}


def apply_transforms(
    outputs: Sequence[OutputTransform], tree: ET.Element
) -> None:
    """Apply every requested transform in registration order."""
    for output in outputs:
        entry = TRANSFORMS[output.key]
        destination = Path(output.value)
        log.info("Writing %s output to %s", output.key, destination)
        entry.apply(tree, destination)
