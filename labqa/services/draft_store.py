from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from urllib.parse import quote

"""Local draft store for in-progress test edits.

One JSON file per (service_id, test_type) under a drafts directory. Drafts are
separate from the durable record held by the REST collaborator and are
disposable: an unreadable draft is reported and treated as absent.
"""

__all__ = [
    "DraftStore",
]

logger = logging.getLogger(__name__)

_SEP = "__"


def _safe(part: str) -> str:
    # injective; "_" is encoded too so _SEP never occurs inside a part
    return quote(part, safe="").replace("_", "%5F")


class DraftStore:
    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def path_for(self, service_id: str, test_type: str) -> Path:
        return self.directory / f"{_safe(service_id)}{_SEP}{_safe(test_type)}.json"

    def save_draft(self, service_id: str, test_type: str, data: Mapping[str, Any]) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(service_id, test_type)
        payload = {
            "serviceId": service_id,
            "testType": test_type,
            "savedAt": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "data": dict(data),
        }
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, path)
        return path

    def load_draft(self, service_id: str, test_type: str) -> dict[str, Any] | None:
        path = self.path_for(service_id, test_type)
        if not path.exists():
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"draft {path.name} unreadable, ignoring: {e}")
            return None
        if not isinstance(payload, dict):
            return None
        if payload.get("serviceId") != service_id or payload.get("testType") != test_type:
            logger.warning(f"draft {path.name} belongs to another test, ignoring")
            return None
        data = payload.get("data")
        return data if isinstance(data, dict) else None

    def discard_draft(self, service_id: str, test_type: str) -> bool:
        path = self.path_for(service_id, test_type)
        if not path.exists():
            return False
        path.unlink()
        return True

    def list_drafts(self, service_id: str) -> list[str]:
        """Test types with a stored draft for service_id, sorted."""
        if not self.directory.exists():
            return []
        prefix = f"{_safe(service_id)}{_SEP}"
        out: list[str] = []
        for p in self.directory.glob(f"{prefix}*.json"):
            try:
                payload = json.loads(p.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError):
                continue
            if isinstance(payload, dict) and payload.get("serviceId") == service_id:
                out.append(str(payload.get("testType", p.stem[len(prefix):])))
        return sorted(out)
