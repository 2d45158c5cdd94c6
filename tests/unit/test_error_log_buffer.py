from __future__ import annotations

import json
import re
from pathlib import Path

from labqa.logging.error_log import ErrorLogBuffer
from labqa.models.error_record import ErrorRecord
from labqa.models.parse_result import ParseDiagnostic


def test_flush_writes_json_lines(temp_workdir: Path):
    buf = ErrorLogBuffer()
    buf.append(ErrorRecord.create("a.csv", "<FILE_LEVEL>", -1, "UNSUPPORTED_FORMAT", "bad"))
    buf.extend_from_diagnostics("b.csv", [
        ParseDiagnostic("SECTION_UNRECOGNIZED", "WHATEVER", 3, "no test type matches"),
    ])
    path = buf.flush()
    assert path is not None
    assert path.parent == Path("./logs")
    assert re.match(r"errors-\d{8}-\d{6}\.log$", path.name)

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    second = json.loads(lines[1])
    assert second["file"] == "b.csv"
    assert second["section"] == "WHATEVER"
    assert second["row"] == 3
    assert second["error_type"] == "SECTION_UNRECOGNIZED"
    assert buf.records == []


def test_flush_empty_creates_nothing(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    assert buf.flush() is None
    assert not (tmp_path / "logs").exists()


def test_file_path_is_stable(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path)
    assert buf.file_path == buf.file_path


def test_second_flush_appends(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path)
    buf.append(ErrorRecord.create("a.csv", "s", 1, "X", "one"))
    first = buf.flush()
    buf.append(ErrorRecord.create("a.csv", "s", 2, "X", "two"))
    second = buf.flush()
    assert first == second
    assert len(first.read_text(encoding="utf-8").splitlines()) == 2
