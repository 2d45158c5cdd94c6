from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..errors import ConfigError
from ..models.config_models import FetchConfig, IngestConfig, PersistenceConfig, Tolerance
from .test_types import DEFAULT_REGISTRY, TestTypeRegistry

"""Config loader.

Responsibilities:
- Load the YAML config (config/ingest.yml by default)
- Validate against the packaged JSON schema (config_schema.json)
- Apply defaults and environment overrides (LABQA_API_BASE_URL, LABQA_API_TOKEN)
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
    "build_config",
]

DEFAULT_CONFIG_PATH = Path("config/ingest.yml")
SCHEMA_PATH = Path(__file__).with_name("config_schema.json")

ENV_BASE_URL = "LABQA_API_BASE_URL"
ENV_TOKEN = "LABQA_API_TOKEN"


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing/invalid, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _build_tolerances(raw: dict[str, Any], registry: TestTypeRegistry) -> dict[str, Tolerance]:
    tolerances: dict[str, Tolerance] = {}
    for test_type, entry in raw.items():
        if test_type not in registry:
            raise ConfigError(f"tolerance for unknown test type: {test_type}")
        tol = Tolerance.parse(entry["value"], entry.get("operator", "<="))
        if tol is None:  # pragma: no cover - schema already restricts the values
            raise ConfigError(f"invalid tolerance for {test_type}: {entry}")
        tolerances[test_type] = tol
    return tolerances


def build_config(data: dict[str, Any], registry: TestTypeRegistry | None = None) -> IngestConfig:
    """Build an IngestConfig from already-parsed config data."""
    _validate_config_schema(data)
    registry = registry or DEFAULT_REGISTRY

    persistence = None
    p_raw = data.get("persistence") or {}
    base_url = os.getenv(ENV_BASE_URL) or p_raw.get("base_url")
    if base_url:
        persistence = PersistenceConfig(
            base_url=base_url.rstrip("/"),
            timeout=float(p_raw.get("timeout", 30.0)),
            token=os.getenv(ENV_TOKEN) or None,
            service_id=p_raw.get("service_id"),
        )

    f_raw = data.get("fetch") or {}
    fetch = FetchConfig(
        timeout=float(f_raw.get("timeout", 30.0)),
        proxy_endpoint=f_raw.get("proxy_endpoint"),
    )

    return IngestConfig(
        source_directory=data["source_directory"],
        strict=bool(data.get("strict", False)),
        tolerances=_build_tolerances(data.get("tolerances") or {}, registry),
        persistence=persistence,
        fetch=fetch,
        drafts_directory=data.get("drafts_directory"),
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH, registry: TestTypeRegistry | None = None) -> IngestConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")
    return build_config(data, registry)
