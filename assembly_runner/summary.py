"""Grand-total summary rendering and exit status computation."""

from collections.abc import Mapping, Sequence

from assembly_runner.models.result import ExecutionSummary

GRAND_TOTAL_LABEL = "GRAND TOTAL:"


def grand_total(summaries: Mapping[str, ExecutionSummary]) -> ExecutionSummary:
    """Sum every counter and the per-assembly times."""
    values = summaries.values()
    return ExecutionSummary(
        total=sum(s.total for s in values),
        failed=sum(s.failed for s in values),
        skipped=sum(s.skipped for s in values),
        errors=sum(s.errors for s in values),
        time=sum(s.time for s in values),
    )


def format_summary(
    summaries: Mapping[str, ExecutionSummary], clock_time: float
) -> Sequence[str]:
    """Render the summary table, one row per assembly plus the grand total.

    Columns are aligned to the widest value in each column. The grand total
    row ends with the wall-clock time of the whole run.
    """
    if not summaries:
        return []

    rows = [(name, summaries[name]) for name in sorted(summaries)]
    rows.append((GRAND_TOTAL_LABEL, grand_total(summaries)))

    name_width = max(len(name) for name, _ in rows)
    total_width = max(len(str(s.total)) for _, s in rows)
    errors_width = max(len(str(s.errors)) for _, s in rows)
    failed_width = max(len(str(s.failed)) for _, s in rows)
    skipped_width = max(len(str(s.skipped)) for _, s in rows)
    time_width = max(len(_seconds(s.time)) for _, s in rows)

    lines = ["", "=== TEST EXECUTION SUMMARY ==="]
    for name, summary in rows:
        label = (
            name.rjust(name_width)
            if name == GRAND_TOTAL_LABEL
            else name.ljust(name_width)
        )
        lines.append(
            f"   {label}  "
            f"Total: {str(summary.total).rjust(total_width)}, "
            f"Errors: {str(summary.errors).rjust(errors_width)}, "
            f"Failed: {str(summary.failed).rjust(failed_width)}, "
            f"Skipped: {str(summary.skipped).rjust(skipped_width)}, "
            f"Time: {_seconds(summary.time).rjust(time_width)}"
        )
    lines[-1] += f" ({_seconds(clock_time)})"
    return lines


def exit_code(
    summaries: Mapping[str, ExecutionSummary], any_assembly_failed: bool
) -> int:
    """Failed-test count, at least 1 when any assembly failed to run."""
    failed = sum(summary.failed for summary in summaries.values())
    return max(1 if any_assembly_failed else 0, failed)


def _seconds(value: float) -> str:
    return f"{value:.3f}s"
