from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

"""ParsedField / MeasurementRow models.

ParsedField is the atomic output of the section parser. MeasurementRow is the
per-test row rebuilt by grouping ParsedFields on (test_name, row_index); it
holds raw string values only.
"""

__all__ = [
    "ParsedField",
    "MeasurementRow",
]


@dataclass(frozen=True)
class ParsedField:
    """One recognized cell value inside a test section.

    row_index is the per-test counter (1-based), not the file row number:
    blank rows and header rows do not advance it.
    """
    test_name: str
    row_index: int
    field_name: str
    value: str

    def to_dict(self) -> dict[str, object]:
        return {
            "testName": self.test_name,
            "rowIndex": self.row_index,
            "fieldName": self.field_name,
            "value": self.value,
        }


@dataclass(frozen=True)
class MeasurementRow:
    test_name: str
    row_index: int
    values: Mapping[str, str] = field(default_factory=dict)

    def get(self, field_name: str, default: str | None = None) -> str | None:
        return self.values.get(field_name, default)

    def __contains__(self, field_name: object) -> bool:
        return field_name in self.values
