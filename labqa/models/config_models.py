from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

"""Configuration dataclasses for the ingestion engine.

TestTypeConfig is static, read-only schema data (one per test type).
IngestConfig is the runtime configuration produced by config.loader from YAML.
"""

__all__ = [
    "OPERATORS",
    "Tolerance",
    "TestTypeConfig",
    "MetricParams",
    "PersistenceConfig",
    "FetchConfig",
    "IngestConfig",
]

# Comparison operators accepted for configurable tolerances. The symbols and long
# forms are what the dashboard displays and stores in its test records.
OPERATORS: Mapping[str, str] = {
    "<=": "<=",
    ">=": ">=",
    "=": "=",
    "≤": "<=",
    "≥": ">=",
    "less than or equal to": "<=",
    "greater than or equal to": ">=",
    "equal to": "=",
}


@dataclass(frozen=True)
class Tolerance:
    """Threshold + comparison operator used to produce a verdict."""
    value: float
    operator: str = "<="

    def __post_init__(self) -> None:
        if self.operator not in ("<=", ">=", "="):
            raise ValueError(f"unsupported tolerance operator: {self.operator!r}")

    @classmethod
    def parse(cls, value: object, operator: object = "<=") -> Tolerance | None:
        """Build a Tolerance from loosely typed input; None when unusable."""
        op = OPERATORS.get(str(operator).strip()) if operator is not None else "<="
        if op is None:
            return None
        try:
            num = float(str(value).strip())
        except (TypeError, ValueError):
            return None
        if num != num or num in (float("inf"), float("-inf")):
            return None
        return cls(value=num, operator=op)


@dataclass(frozen=True)
class TestTypeConfig:
    """Per-test-type schema and calculation settings.

    field_schema maps display header / label strings to canonical field ids.
    settings_fields are fields that may arrive on label/value rows and apply to
    the whole test group (kV, mA, workload, ...).
    """
    __test__ = False  # not a pytest class

    name: str
    field_schema: Mapping[str, str]
    calculation: str  # linearity | leakage | consistency | accuracy | survey
    measurement_fields: tuple[str, ...] = ()
    normalizer_fields: tuple[str, ...] = ()
    set_field: str | None = None
    settings_fields: tuple[str, ...] = ()
    default_tolerance: Tolerance = Tolerance(0.1)
    allows_label_value_pairs: bool = False

    @property
    def canonical_fields(self) -> frozenset[str]:
        return frozenset(self.field_schema.values())


@dataclass(frozen=True)
class MetricParams:
    """Caller-supplied calculation parameters (all optional)."""
    tolerance: Tolerance | None = None
    survey_limits: Mapping[str, float] | None = None


@dataclass(frozen=True)
class PersistenceConfig:
    base_url: str
    timeout: float = 30.0
    token: str | None = None
    service_id: str | None = None


@dataclass(frozen=True)
class FetchConfig:
    timeout: float = 30.0
    proxy_endpoint: str | None = None


@dataclass(frozen=True)
class IngestConfig:
    """Root configuration object for batch ingestion."""
    source_directory: str
    strict: bool = False
    tolerances: Mapping[str, Tolerance] = field(default_factory=dict)
    persistence: PersistenceConfig | None = None
    fetch: FetchConfig = FetchConfig()
    drafts_directory: str | None = None

    def params_for(self, test_type: str) -> MetricParams:
        return MetricParams(tolerance=self.tolerances.get(test_type))
