"""Lookup of installed test engines by their ``-engine`` key."""

from importlib.metadata import entry_points
from typing import Any

from assembly_runner.engines.manifest import EngineManifest

ENTRY_POINT_GROUP = "assembly_runner.engines"


class EngineNotFoundError(Exception):
    """No installed distribution registers a usable engine under the key."""


def load_engine_manifest(key: str) -> EngineManifest[Any]:
    """Resolve an ``-engine`` key to the manifest registered for it.

    Engines are registered under the ``assembly_runner.engines`` entry-point
    group; this package registers ``python`` itself. The error message lists
    every installed key so a typo is easy to spot.
    """
    registered = {entry.name: entry for entry in entry_points(group=ENTRY_POINT_GROUP)}
    if key not in registered:
        installed = ", ".join(sorted(registered)) or "none"
        raise EngineNotFoundError(
            f"unknown test engine '{key}' (installed engines: {installed})"
        )

    manifest = registered[key].load()
    if not isinstance(manifest, EngineManifest):
        raise EngineNotFoundError(
            f"entry point '{key}' in group {ENTRY_POINT_GROUP} "
            "does not provide an engine manifest"
        )
    return manifest
