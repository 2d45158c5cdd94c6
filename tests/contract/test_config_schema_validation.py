from __future__ import annotations

import json

import jsonschema
import pytest
import yaml
from jsonschema.exceptions import ValidationError

from labqa.config.loader import SCHEMA_PATH

"""Config schema contract test (packaged config_schema.json)."""


def _schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_config_schema_valid_example():
    config = yaml.safe_load("""
source_directory: ./data
strict: true
tolerances:
  radiationLeakageLevel: {value: 1.0, operator: "<="}
persistence:
  base_url: https://qa.example.org/api
  timeout: 15
  service_id: SRV-0042
fetch:
  proxy_endpoint: https://qa.example.org/api/proxy-file
drafts_directory: ./drafts
""")
    jsonschema.validate(config, _schema())


def test_sample_config_is_valid(sample_config_yaml: str):
    jsonschema.validate(yaml.safe_load(sample_config_yaml), _schema())


@pytest.mark.parametrize(
    "config",
    [
        {},
        {"source_directory": ""},
        {"source_directory": "./data", "tolerances": {"linearityOfTime": {"value": 0}}},
        {"source_directory": "./data", "tolerances": {"linearityOfTime": {"operator": "<="}}},
        {"source_directory": "./data", "persistence": {"timeout": 5}},
        {"source_directory": "./data", "persistence": {"base_url": "x", "token": "inline-secret"}},
        {"source_directory": "./data", "fetch": {"timeout": -1}},
    ],
)
def test_config_schema_rejects(config: dict):
    with pytest.raises(ValidationError):
        jsonschema.validate(config, _schema())
