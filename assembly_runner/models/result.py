"""Models for per-assembly execution results."""

from dataclasses import dataclass


@dataclass(frozen=True, kw_only=True)
class ExecutionSummary:
    """Counters for one assembly's run, frozen once the run completes.

    ``time`` is the engine-reported execution time in seconds.
    """

    total: int = 0
    failed: int = 0
    skipped: int = 0
    errors: int = 0
    time: float = 0.0
