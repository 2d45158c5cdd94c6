from __future__ import annotations

import json

from labqa.models.error_record import ErrorRecord


def test_create_sets_utc_timestamp():
    rec = ErrorRecord.create("report.xlsx", "linearityOfTime", 4, "FIELD_UNMAPPED", "header 'x' has no field mapping")
    assert rec.timestamp.endswith("Z")
    assert "+00:00" not in rec.timestamp


def test_to_json_line_has_fixed_keys():
    rec = ErrorRecord.create("report.xlsx", "<FILE_LEVEL>", -1, "UNSUPPORTED_FORMAT", "unsupported file type")
    data = json.loads(rec.to_json_line())
    assert list(data) == ["timestamp", "file", "section", "row", "error_type", "message"]
    assert data["row"] == -1


def test_to_json_line_keeps_non_ascii():
    rec = ErrorRecord.create("bericht.csv", "Übersicht", 1, "SECTION_UNRECOGNIZED", "µGy")
    assert "Übersicht" in rec.to_json_line()
