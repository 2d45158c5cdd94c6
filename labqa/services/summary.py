from __future__ import annotations

from ..models.processing_result import ProcessingResult

"""SUMMARY line rendering for batch ingestion runs."""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: ProcessingResult) -> str:
    """Render the SUMMARY line.

    Format:
    SUMMARY files={n}/{n} success={s} failed={f} fields={k} sections={r}
    skipped_sections={u} elapsed_sec={e}

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = ProcessingResult(
        ...     success_files=1, failed_files=0, total_fields=12, total_sections=2,
        ...     skipped_sections=0, start_time=start, end_time=end, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY files=1/1 success=1 failed=0 fields=12 sections=2 skipped_sections=0 elapsed_sec=2'
    """
    total = result.total_files
    return (
        f"SUMMARY files={total}/{total} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"fields={result.total_fields} "
        f"sections={result.total_sections} "
        f"skipped_sections={result.skipped_sections} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
