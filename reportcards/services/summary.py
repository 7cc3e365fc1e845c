from __future__ import annotations

from ..models.processing_result import BatchResult

"""SUMMARY line rendering.

Format:
SUMMARY files={n} success={s} partial={p} failed={f} students={total}
valid={v} blocked={b} errors={e} warnings={w} elapsed_sec={sec}
"""

__all__ = [
    "format_elapsed",
    "render_summary_line",
]


def format_elapsed(seconds: float) -> str:
    """Seconds without scientific notation; whole values without a fraction."""
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return str(round(seconds, 3))


def render_summary_line(result: BatchResult) -> str:
    """Render the SUMMARY line for a batch run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 4, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 4, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = BatchResult(
        ...     success_files=1, partial_files=1, failed_files=0, total_students=40,
        ...     valid_students=38, error_count=3, warning_count=5,
        ...     start_time=start, end_time=end, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY files=2 success=1 partial=1 failed=0 students=40 valid=38 blocked=2 errors=3 warnings=5 elapsed_sec=2'
    """
    return (
        f"SUMMARY files={result.total_files} "
        f"success={result.success_files} "
        f"partial={result.partial_files} "
        f"failed={result.failed_files} "
        f"students={result.total_students} "
        f"valid={result.valid_students} "
        f"blocked={result.blocked_students} "
        f"errors={result.error_count} "
        f"warnings={result.warning_count} "
        f"elapsed_sec={format_elapsed(result.elapsed_seconds)}"
    )
