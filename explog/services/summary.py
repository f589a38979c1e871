from __future__ import annotations

from ..models.export_result import ExportResult

"""Summary line rendering for the export CLI.

Format:
SUMMARY status={status} experiments=+{ins}/~{upd} stacks=+{ins}/~{upd}
sites=+{created} elapsed_sec={elapsed}
"""

__all__ = ["render_summary_line", "format_elapsed"]


def format_elapsed(seconds: float) -> str:
    """Render seconds without scientific notation ("0", "2", "0.001234", "1.5")."""
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: ExportResult) -> str:
    """Render a SUMMARY line from an ExportResult.

    Examples:
        >>> from datetime import datetime, timezone
        >>> from explog.models.export_result import ExportStatus, UpsertCounters
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = ExportResult(
        ...     status=ExportStatus.EXPORTED, animal_id="M001",
        ...     counters=UpsertCounters(inserted_experiments=1, inserted_stacks=3, created_sites=1),
        ...     start_time=start, end_time=end,
        ... )
        >>> render_summary_line(result)
        'SUMMARY status=exported experiments=+1/~0 stacks=+3/~0 sites=+1 elapsed_sec=2'
    """
    c = result.counters
    return (
        f"SUMMARY status={result.status.value} "
        f"experiments=+{c.inserted_experiments}/~{c.updated_experiments} "
        f"stacks=+{c.inserted_stacks}/~{c.updated_stacks} "
        f"sites=+{c.created_sites} "
        f"elapsed_sec={format_elapsed(result.elapsed_seconds)}"
    )
