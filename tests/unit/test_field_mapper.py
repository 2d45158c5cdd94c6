from __future__ import annotations

from types import MappingProxyType

import pytest

from labqa.config.test_types import DEFAULT_REGISTRY, SECTION_MARKERS, TEST_TYPES, TestTypeRegistry
from labqa.models.config_models import TestTypeConfig
from labqa.services.field_mapper import FieldMapper, resolve


def test_resolve_known_header():
    assert resolve("linearityOfMaLoading", "mA Station") == "mA_Station"
    assert resolve("linearityOfMaLoading", "Measured mR 3") == "Measured_2"
    assert resolve("radiationLeakageLevel", "Tolerance Value") == "ToleranceValue"


def test_resolve_is_case_sensitive_and_exact():
    assert resolve("linearityOfMaLoading", "ma station") is None
    assert resolve("linearityOfMaLoading", "mA Station ") is None


def test_resolve_unknown_test_or_empty_label():
    assert resolve("noSuchTest", "kV") is None
    assert resolve("linearityOfMaLoading", "") is None


def test_every_marker_targets_a_registered_test_type():
    for marker, test_type in SECTION_MARKERS.items():
        assert test_type in TEST_TYPES, marker


def test_same_quantity_keeps_canonical_id_across_tests():
    kv_ids = {cfg.field_schema["kV"] for cfg in TEST_TYPES.values() if "kV" in cfg.field_schema}
    assert kv_ids == {"kV"}


@pytest.mark.parametrize(
    "title, expected",
    [
        ("LINEARITY OF mA LOADING", "linearityOfMaLoading"),
        ("Linearity of mAs Loading (Radiography)", "linearityOfMasLoading"),
        ("  linearity of time  ", "linearityOfTime"),
        ("TOTAL FILTRATION", "accuracyOfOperatingPotential"),
        ("Reproducibility of Radiation Output", "consistencyOfRadiationOutput"),
        ("UNKNOWN SECTION TITLE", None),
    ],
)
def test_resolve_marker(title: str, expected: str | None):
    assert FieldMapper().resolve_marker(title) == expected


def test_longest_marker_wins():
    registry = TestTypeRegistry(
        markers={"LINEARITY": "a", "LINEARITY OF TIME": "b"},
        test_types=[],
    )
    assert registry.match_marker("Linearity of Time, 80 kV") == "b"
    assert registry.match_marker("Linearity check") == "a"


def test_count_matches_and_pair_flag():
    mapper = FieldMapper()
    assert mapper.count_matches("linearityOfMaLoading", ["mA Station", "x", "Measured mR 1", ""]) == 2
    assert mapper.allows_label_value_pairs("linearityOfMaLoading") is True
    assert mapper.allows_label_value_pairs("accuracyOfOperatingPotential") is False
    assert mapper.allows_label_value_pairs("noSuchTest") is False


def test_custom_registry():
    cfg = TestTypeConfig(
        name="collimation",
        field_schema=MappingProxyType({"Edge": "edge"}),
        calculation="accuracy",
    )
    mapper = FieldMapper(TestTypeRegistry(markers={"COLLIMATION": "collimation"}, test_types=[cfg]))
    assert mapper.resolve_marker("Collimation test") == "collimation"
    assert mapper.resolve("collimation", "Edge") == "edge"
    assert mapper.resolve("linearityOfMaLoading", "mA Station") is None


def test_default_registry_tables_are_read_only():
    with pytest.raises(TypeError):
        SECTION_MARKERS["NEW"] = "x"  # type: ignore[index]
    with pytest.raises(TypeError):
        DEFAULT_REGISTRY.test_types["x"] = None  # type: ignore[index]
