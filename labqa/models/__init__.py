"""Domain models for the lab-data ingestion engine."""

from .config_models import FetchConfig, IngestConfig, MetricParams, PersistenceConfig, TestTypeConfig, Tolerance
from .derived_row import UNAVAILABLE, DerivedGroup, DerivedRow, Metric, Unavailable, Verdict
from .parse_result import ParseDiagnostic, ParseResult
from .parsed_field import MeasurementRow, ParsedField

__all__ = [
    # Configuration models
    "FetchConfig",
    "IngestConfig",
    "MetricParams",
    "PersistenceConfig",
    "TestTypeConfig",
    "Tolerance",
    # Parsing models
    "ParsedField",
    "MeasurementRow",
    "ParseDiagnostic",
    "ParseResult",
    # Derived metrics
    "UNAVAILABLE",
    "Unavailable",
    "Metric",
    "Verdict",
    "DerivedRow",
    "DerivedGroup",
]
