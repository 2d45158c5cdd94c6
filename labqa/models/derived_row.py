from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from .config_models import Tolerance
from .parsed_field import MeasurementRow

"""Derived-metric result models.

DerivedRow / DerivedGroup are always recomputed from MeasurementRow values and
the tolerance; they are never the persisted source of truth.
"""

__all__ = [
    "Unavailable",
    "UNAVAILABLE",
    "Metric",
    "Verdict",
    "DerivedRow",
    "DerivedGroup",
]


class Unavailable(Enum):
    """Sentinel for "could not compute", distinct from zero, None and NaN."""
    UNAVAILABLE = "unavailable"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNAVAILABLE"


UNAVAILABLE = Unavailable.UNAVAILABLE

Metric = Union[float, Unavailable]


class Verdict(Enum):
    PASS = "Pass"
    FAIL = "Fail"
    NONE = ""


@dataclass(frozen=True)
class DerivedRow:
    row: MeasurementRow
    metrics: Mapping[str, Metric] = field(default_factory=dict)
    remark: Verdict = Verdict.NONE

    @property
    def test_name(self) -> str:
        return self.row.test_name

    @property
    def row_index(self) -> int:
        return self.row.row_index

    def metric(self, name: str) -> Metric:
        return self.metrics.get(name, UNAVAILABLE)


@dataclass(frozen=True)
class DerivedGroup:
    """Computed view over all rows of one test instance."""
    test_name: str
    calculation: str
    tolerance: Tolerance
    rows: tuple[DerivedRow, ...] = ()
    settings: Mapping[str, str] = field(default_factory=dict)
    summary: Mapping[str, Metric] = field(default_factory=dict)
    verdict: Verdict = Verdict.NONE

    def to_dict(self) -> dict[str, object]:
        def _plain(v: Metric) -> object:
            return None if v is UNAVAILABLE else v

        return {
            "testName": self.test_name,
            "calculation": self.calculation,
            "tolerance": {"value": self.tolerance.value, "operator": self.tolerance.operator},
            "verdict": self.verdict.value,
            "settings": dict(self.settings),
            "summary": {k: _plain(v) for k, v in self.summary.items()},
            "rows": [
                {
                    "rowIndex": r.row_index,
                    "values": dict(r.row.values),
                    "metrics": {k: _plain(v) for k, v in r.metrics.items()},
                    "remark": r.remark.value,
                }
                for r in self.rows
            ],
        }
