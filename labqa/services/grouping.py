from __future__ import annotations

from collections.abc import Iterable

from ..models.parsed_field import MeasurementRow, ParsedField

"""Rebuild per-test MeasurementRows from the flat ParsedField list."""

__all__ = [
    "group_fields",
]


def group_fields(fields: Iterable[ParsedField]) -> dict[str, list[MeasurementRow]]:
    """Group ParsedFields by (test_name, row_index).

    Tests keep first-seen order; rows are sorted by row_index. When the same
    field appears twice in one row, the first value is kept.
    """
    buckets: dict[str, dict[int, dict[str, str]]] = {}
    for f in fields:
        if not f.test_name:
            continue
        row_values = buckets.setdefault(f.test_name, {}).setdefault(f.row_index, {})
        row_values.setdefault(f.field_name, f.value)

    grouped: dict[str, list[MeasurementRow]] = {}
    for test_name, rows in buckets.items():
        grouped[test_name] = [
            MeasurementRow(test_name=test_name, row_index=idx, values=rows[idx])
            for idx in sorted(rows)
        ]
    return grouped
