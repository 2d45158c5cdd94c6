from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from types import MappingProxyType

from ..config.test_types import DEFAULT_REGISTRY, TestTypeRegistry
from ..models.config_models import MetricParams, TestTypeConfig, Tolerance
from ..models.derived_row import UNAVAILABLE, DerivedGroup, DerivedRow, Metric, Verdict
from ..models.parsed_field import MeasurementRow

"""Derived-metric calculator.

Pure functions over MeasurementRows: no I/O, no caching, no hidden state.
Malformed numbers never raise; they become UNAVAILABLE and every value that
depends on them is UNAVAILABLE too.

Calculation families (TestTypeConfig.calculation):
    linearity    X = average / normalizing factor, CoL = (xMax - xMin) / (xMax + xMin)
    leakage      dose(mR) = workload * exposure(mR/hr) / (60 * mA), dose(mGy) = dose(mR) / 114
    consistency  CV% = population stddev / mean * 100
    accuracy     deviation% = |average - set| / set * 100, total filtration >= required mm Al
    survey       mR/week = workload * mR/hr / (60 * mA), limit by location category
"""

__all__ = [
    "MR_PER_MGY",
    "DEFAULT_SURVEY_LIMITS",
    "parse_number",
    "mean_of_positive",
    "check_tolerance",
    "coefficient_of_linearity",
    "leakage_dose",
    "filtration_limit",
    "compute",
    "compute_all",
    "format_value",
]

# roentgen-equivalent (mR) per gray-equivalent (mGy) conversion used on AERB formats
MR_PER_MGY = 114.0
EQUALITY_EPSILON = 0.001
DEFAULT_SURVEY_LIMITS: Mapping[str, float] = MappingProxyType({"worker": 40.0, "public": 2.0})


def parse_number(value: object) -> Metric:
    """Finite float or UNAVAILABLE."""
    if value is None or value is UNAVAILABLE or isinstance(value, bool):
        return UNAVAILABLE
    if isinstance(value, (int, float)):
        num = float(value)
    else:
        text = str(value).strip()
        if not text:
            return UNAVAILABLE
        try:
            num = float(text)
        except ValueError:
            return UNAVAILABLE
    if not math.isfinite(num):
        return UNAVAILABLE
    return num


def _positive(value: Metric) -> Metric:
    if value is UNAVAILABLE or value <= 0:
        return UNAVAILABLE
    return value


def _positive_values(values: Iterable[object]) -> list[float]:
    out: list[float] = []
    for v in values:
        num = _positive(parse_number(v))
        if num is not UNAVAILABLE:
            out.append(num)
    return out


def mean_of_positive(values: Iterable[object]) -> Metric:
    """Arithmetic mean of numeric, finite, positive values; others are excluded."""
    nums = _positive_values(values)
    if not nums:
        return UNAVAILABLE
    return sum(nums) / len(nums)


def check_tolerance(value: Metric, tolerance: Tolerance) -> Verdict:
    if value is UNAVAILABLE:
        return Verdict.NONE
    if tolerance.operator == "<=":
        ok = value <= tolerance.value
    elif tolerance.operator == ">=":
        ok = value >= tolerance.value
    else:
        ok = abs(value - tolerance.value) < EQUALITY_EPSILON
    return Verdict.PASS if ok else Verdict.FAIL


def coefficient_of_linearity(x_max: Metric, x_min: Metric) -> Metric:
    if x_max is UNAVAILABLE or x_min is UNAVAILABLE:
        return UNAVAILABLE
    denominator = x_max + x_min
    if denominator <= 0:
        return UNAVAILABLE
    return (x_max - x_min) / denominator


def leakage_dose(workload: Metric, exposure_mr_hr: Metric, reference_ma: Metric) -> Metric:
    """Dose rate in mR: (workload x max exposure) / (60 x reference current)."""
    workload = _positive(workload)
    exposure_mr_hr = _positive(exposure_mr_hr)
    reference_ma = _positive(reference_ma)
    if UNAVAILABLE in (workload, exposure_mr_hr, reference_ma):
        return UNAVAILABLE
    return (workload * exposure_mr_hr) / (60 * reference_ma)


def _is_mgy(unit: str | None) -> bool:
    return (unit or "").strip().lower().replace(" ", "") in ("mgy/h", "mgy/hr")


def _split_settings(cfg: TestTypeConfig, rows: Sequence[MeasurementRow]) -> tuple[dict[str, str], list[MeasurementRow]]:
    """Separate label/value settings rows from measurement rows."""
    allowed = set(cfg.settings_fields)
    settings: dict[str, str] = {}
    data_rows: list[MeasurementRow] = []
    for row in rows:
        if row.values and allowed and all(k in allowed for k in row.values):
            for k, v in row.values.items():
                settings.setdefault(k, v)
        else:
            data_rows.append(row)
    return settings, data_rows


def _lookup(row: MeasurementRow, settings: Mapping[str, str], field_name: str) -> str | None:
    value = row.get(field_name)
    if value:
        return value
    return settings.get(field_name)


def _resolve_tolerance(cfg: TestTypeConfig, params: MetricParams, settings: Mapping[str, str]) -> Tolerance:
    from_file = None
    if "ToleranceValue" in settings:
        value = settings["ToleranceValue"]
        # an unrecognised operator keeps the file value and compares with <=
        from_file = Tolerance.parse(value, settings.get("ToleranceOperator", "<=")) or Tolerance.parse(value)
    return from_file or params.tolerance or cfg.default_tolerance


def _aggregate(remarks: Iterable[Verdict]) -> Verdict:
    seen = set(remarks)
    if Verdict.FAIL in seen:
        return Verdict.FAIL
    if Verdict.PASS in seen:
        return Verdict.PASS
    return Verdict.NONE


def _max_available(values: Iterable[Metric]) -> Metric:
    nums = [v for v in values if v is not UNAVAILABLE]
    return max(nums) if nums else UNAVAILABLE


def _linearity(cfg, data_rows, settings, tolerance, params):
    per_row: list[tuple[MeasurementRow, dict[str, Metric]]] = []
    for row in data_rows:
        average = mean_of_positive(row.get(f) for f in cfg.measurement_fields)
        factor: Metric = 1.0
        for name in cfg.normalizer_fields:
            part = parse_number(_lookup(row, settings, name))
            factor = UNAVAILABLE if part is UNAVAILABLE or factor is UNAVAILABLE else factor * part
        factor = _positive(factor)
        x = UNAVAILABLE if average is UNAVAILABLE or factor is UNAVAILABLE else average / factor
        per_row.append((row, {"average": average, "x": x}))

    xs = [m["x"] for _, m in per_row if m["x"] is not UNAVAILABLE]
    x_max = max(xs) if xs else UNAVAILABLE
    x_min = min(xs) if xs else UNAVAILABLE
    col = coefficient_of_linearity(x_max, x_min)
    # CoL comparison is always inclusive "<=", whatever operator was configured
    verdict = check_tolerance(col, Tolerance(tolerance.value, "<="))

    rows = tuple(DerivedRow(row=r, metrics=m, remark=verdict) for r, m in per_row)
    summary = {"x_max": x_max, "x_min": x_min, "col": col}
    return rows, summary, verdict


def _leakage(cfg, data_rows, settings, tolerance, params):
    derived: list[DerivedRow] = []
    for row in data_rows:
        readings = _positive_values(row.get(f) for f in cfg.measurement_fields)
        exposure = max(readings) if readings else _positive(parse_number(row.get("Table2_Max")))
        unit = row.get("Table2_Unit") or settings.get("Table2_Unit")
        if exposure is UNAVAILABLE:
            exposure_mr_hr = UNAVAILABLE
        else:
            exposure_mr_hr = exposure * MR_PER_MGY if _is_mgy(unit) else exposure
        dose_mr = leakage_dose(
            parse_number(_lookup(row, settings, "Workload")),
            exposure_mr_hr,
            parse_number(_lookup(row, settings, "mA")),
        )
        dose_mgy = UNAVAILABLE if dose_mr is UNAVAILABLE else dose_mr / MR_PER_MGY
        metrics = {
            "max_exposure": exposure,
            "exposure_mr_hr": exposure_mr_hr,
            "dose_mr": dose_mr,
            "dose_mgy": dose_mgy,
        }
        derived.append(DerivedRow(row=row, metrics=metrics, remark=check_tolerance(dose_mgy, tolerance)))

    max_mgy = _max_available(r.metrics["dose_mgy"] for r in derived)
    verdict = check_tolerance(max_mgy, tolerance)
    return tuple(derived), {"max_dose_mgy": max_mgy}, verdict


def _consistency(cfg, data_rows, settings, tolerance, params):
    derived: list[DerivedRow] = []
    for row in data_rows:
        values = _positive_values(row.get(f) for f in cfg.measurement_fields)
        if values:
            mean = sum(values) / len(values)
            variance = sum((v - mean) ** 2 for v in values) / len(values)
            cv: Metric = math.sqrt(variance) / mean * 100
            average: Metric = mean
        else:
            average = cv = UNAVAILABLE
        derived.append(DerivedRow(
            row=row,
            metrics={"average": average, "cv": cv},
            remark=check_tolerance(cv, tolerance),
        ))
    summary = {"max_cv": _max_available(r.metrics["cv"] for r in derived)}
    return tuple(derived), summary, _aggregate(r.remark for r in derived)


# Total filtration limit (mm Al) by tube potential: (upper kV bound, limit)
FILTRATION_BANDS: tuple[tuple[float, float], ...] = ((70.0, 1.5), (100.0, 2.0), (math.inf, 2.5))


def filtration_limit(kvp: Metric) -> Metric:
    """Minimum total filtration in mm Al for the given tube potential."""
    if kvp is UNAVAILABLE or kvp <= 0:
        return UNAVAILABLE
    for upper, limit in FILTRATION_BANDS:
        if kvp <= upper:
            return limit
    return UNAVAILABLE


def _filtration_row(row: MeasurementRow, settings: Mapping[str, str]) -> DerivedRow:
    measured = _positive(parse_number(row.get("Measured")))
    required = _positive(parse_number(row.get("Required")))
    if required is UNAVAILABLE:
        required = filtration_limit(parse_number(_lookup(row, settings, "atKvp")))
    if required is UNAVAILABLE:
        remark = Verdict.NONE
    else:
        remark = check_tolerance(measured, Tolerance(required, ">="))
    return DerivedRow(
        row=row,
        metrics={"filtration_mm_al": measured, "required_mm_al": required},
        remark=remark,
    )


def _accuracy(cfg, data_rows, settings, tolerance, params):
    derived: list[DerivedRow] = []
    for row in data_rows:
        if "Measured" in row or "Required" in row:
            derived.append(_filtration_row(row, settings))
            continue
        average = mean_of_positive(row.get(f) for f in cfg.measurement_fields)
        set_value = _positive(parse_number(_lookup(row, settings, cfg.set_field))) if cfg.set_field else UNAVAILABLE
        if average is UNAVAILABLE or set_value is UNAVAILABLE:
            deviation = UNAVAILABLE
        else:
            deviation = abs(average - set_value) / set_value * 100
        derived.append(DerivedRow(
            row=row,
            metrics={"average": average, "deviation_pct": deviation},
            remark=check_tolerance(deviation, tolerance),
        ))
    summary = {"max_deviation_pct": _max_available(r.metric("deviation_pct") for r in derived)}
    return tuple(derived), summary, _aggregate(r.remark for r in derived)


def _survey(cfg, data_rows, settings, tolerance, params):
    limits = params.survey_limits if params.survey_limits is not None else DEFAULT_SURVEY_LIMITS
    derived: list[DerivedRow] = []
    for row in data_rows:
        weekly = leakage_dose(
            parse_number(_lookup(row, settings, "Workload")),
            parse_number(row.get("mR_hr")),
            parse_number(_lookup(row, settings, "mA")),
        )
        category = (row.get("Category") or "").strip().lower()
        limit = Tolerance(limits.get(category, tolerance.value), tolerance.operator)
        derived.append(DerivedRow(
            row=row,
            metrics={"mr_per_week": weekly, "limit": limit.value},
            remark=check_tolerance(weekly, limit),
        ))
    summary = {"max_mr_per_week": _max_available(r.metrics["mr_per_week"] for r in derived)}
    return tuple(derived), summary, _aggregate(r.remark for r in derived)


_CALCULATORS: Mapping[str, Callable] = MappingProxyType({
    "linearity": _linearity,
    "leakage": _leakage,
    "consistency": _consistency,
    "accuracy": _accuracy,
    "survey": _survey,
})


def compute(
    test_type: str,
    rows: Sequence[MeasurementRow],
    params: MetricParams | None = None,
    *,
    registry: TestTypeRegistry | None = None,
) -> DerivedGroup:
    """Compute derived rows, summary values and verdict for one test group.

    Raises:
        ValueError: if test_type is not in the registry
    """
    registry = registry or DEFAULT_REGISTRY
    cfg = registry.get(test_type)
    if cfg is None:
        raise ValueError(f"unknown test type: {test_type!r}")
    calculator = _CALCULATORS.get(cfg.calculation)
    if calculator is None:
        raise ValueError(f"unknown calculation kind {cfg.calculation!r} for {test_type!r}")

    params = params or MetricParams()
    settings, data_rows = _split_settings(cfg, rows)
    tolerance = _resolve_tolerance(cfg, params, settings)
    derived_rows, summary, verdict = calculator(cfg, data_rows, settings, tolerance, params)
    return DerivedGroup(
        test_name=test_type,
        calculation=cfg.calculation,
        tolerance=tolerance,
        rows=derived_rows,
        settings=settings,
        summary=summary,
        verdict=verdict,
    )


def compute_all(
    grouped: Mapping[str, Sequence[MeasurementRow]],
    params: Mapping[str, MetricParams] | None = None,
    *,
    registry: TestTypeRegistry | None = None,
) -> dict[str, DerivedGroup]:
    params = params or {}
    return {
        test_type: compute(test_type, rows, params.get(test_type), registry=registry)
        for test_type, rows in grouped.items()
    }


def format_value(value: Metric, places: int = 3) -> str:
    """Display form: fixed decimals, UNAVAILABLE as an em dash."""
    if value is UNAVAILABLE:
        return "—"
    return f"{value:.{places}f}"
