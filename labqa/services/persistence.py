from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import quote

import httpx

from ..errors import PersistenceFailure
from ..models.config_models import PersistenceConfig, Tolerance
from ..models.parsed_field import MeasurementRow

"""Persistence of test records to the REST collaborator.

A test record holds the raw MeasurementRow values and the tolerance for one
(service_id, test_type). Derived values are never sent; they are recomputed
from the record on load.
"""

__all__ = [
    "build_test_record",
    "rows_from_record",
    "RecordStore",
]

logger = logging.getLogger(__name__)


def build_test_record(
    service_id: str,
    test_type: str,
    rows: Sequence[MeasurementRow],
    tolerance: Tolerance,
) -> dict[str, Any]:
    return {
        "serviceId": service_id,
        "testType": test_type,
        "tolerance": {"value": tolerance.value, "operator": tolerance.operator},
        "rows": [{"rowIndex": r.row_index, "values": dict(r.values)} for r in rows],
    }


def rows_from_record(record: Mapping[str, Any]) -> tuple[list[MeasurementRow], Tolerance | None]:
    """Inverse of build_test_record: raw rows + tolerance ready for compute()."""
    test_type = str(record.get("testType", ""))
    rows = [
        MeasurementRow(
            test_name=test_type,
            row_index=int(r["rowIndex"]),
            values={str(k): str(v) for k, v in (r.get("values") or {}).items()},
        )
        for r in record.get("rows") or []
    ]
    tol_raw = record.get("tolerance") or {}
    tolerance = Tolerance.parse(tol_raw.get("value"), tol_raw.get("operator", "<=")) if tol_raw else None
    return rows, tolerance


def _is_retryable_status(status: int) -> bool:
    return status >= 500 or status in (408, 409, 429)


class RecordStore:
    """Thin httpx client for per-test-type records keyed by (service_id, test_type)."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        token: str | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._own_client = client is None
        self._client = client or httpx.Client(timeout=timeout)
        self._headers = headers
        self.timeout = timeout

    @classmethod
    def from_config(cls, cfg: PersistenceConfig, client: httpx.Client | None = None) -> RecordStore:
        return cls(cfg.base_url, timeout=cfg.timeout, token=cfg.token, client=client)

    def record_url(self, service_id: str, test_type: str) -> str:
        return f"{self.base_url}/services/{quote(service_id, safe='')}/tests/{quote(test_type, safe='')}"

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, headers=self._headers, timeout=self.timeout, **kwargs)
            if response.status_code != 404:
                response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise PersistenceFailure(
                f"{method} {url} -> HTTP {status}",
                retryable=_is_retryable_status(status),
                status_code=status,
            ) from e
        except httpx.HTTPError as e:
            raise PersistenceFailure(f"{method} {url} failed: {e}", retryable=True) from e

    def save(self, record: Mapping[str, Any]) -> dict[str, Any]:
        url = self.record_url(str(record["serviceId"]), str(record["testType"]))
        response = self._request("PUT", url, json=dict(record))
        if response.status_code == 404:
            raise PersistenceFailure(f"PUT {url} -> HTTP 404", retryable=False, status_code=404)
        logger.debug(f"saved {record['testType']} for service {record['serviceId']}")
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    def load(self, service_id: str, test_type: str) -> dict[str, Any] | None:
        url = self.record_url(service_id, test_type)
        response = self._request("GET", url)
        if response.status_code == 404:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise PersistenceFailure(f"GET {url} returned invalid JSON", retryable=False) from e

    def close(self) -> None:
        if self._own_client:
            self._client.close()

    def __enter__(self) -> RecordStore:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
