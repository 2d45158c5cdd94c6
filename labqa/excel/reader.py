from __future__ import annotations

import io
import math
import re
from pathlib import PurePosixPath
from typing import Any

import pandas as pd

from ..errors import UnsupportedFormat

"""Tabular file reader.

Decodes an uploaded or fetched lab-data file into a Grid: a list of rows, each
a list of trimmed strings, in file row order.

- Delimited text: split on line breaks, then on the delimiter, trim each cell.
  No quoting/escaping support (lab exports never quote).
- Spreadsheet binaries: first sheet only, read with pandas (header=None),
  every cell coerced to str, absent cells -> "".
"""

__all__ = [
    "Grid",
    "TEXT_FORMATS",
    "SPREADSHEET_FORMATS",
    "detect_format",
    "read_grid",
    "read_delimited",
    "read_spreadsheet",
]

Grid = list[list[str]]

# extension -> delimiter
TEXT_FORMATS: dict[str, str] = {".csv": ",", ".txt": ",", ".tsv": "\t"}
SPREADSHEET_FORMATS: frozenset[str] = frozenset({".xlsx", ".xlsm", ".xls", ".ods"})

_MIME_TO_EXT: dict[str, str] = {
    "text/csv": ".csv",
    "application/csv": ".csv",
    "text/plain": ".txt",
    "text/tab-separated-values": ".tsv",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
    "application/vnd.ms-excel.sheet.macroenabled.12": ".xlsm",
    "application/vnd.ms-excel": ".xls",
    "application/vnd.oasis.opendocument.spreadsheet": ".ods",
}

_LINE_SPLIT_RE = re.compile(r"\r\n|\n|\r")


def detect_format(hint: str) -> str:
    """Map a file name, URL, extension or MIME type to a supported extension.

    Raises:
        UnsupportedFormat: when the hint names no supported format
    """
    if not hint:
        raise UnsupportedFormat("missing file name / MIME hint")
    raw = hint.strip().lower()
    mime = raw.split(";", 1)[0].strip()
    if mime in _MIME_TO_EXT:
        return _MIME_TO_EXT[mime]
    # URLs: drop query string and fragment before looking at the suffix
    path = raw.split("?", 1)[0].split("#", 1)[0]
    ext = path if path.startswith(".") and "/" not in path else PurePosixPath(path).suffix
    if ext in TEXT_FORMATS or ext in SPREADSHEET_FORMATS:
        return ext
    raise UnsupportedFormat(f"unsupported file type: {hint!r}")


def _decode_text(data: bytes | str) -> str:
    if isinstance(data, str):
        return data
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        # lab PCs frequently export in a Windows code page
        return data.decode("latin-1")


def read_delimited(data: bytes | str, delimiter: str = ",") -> Grid:
    text = _decode_text(data)
    return [[cell.strip() for cell in line.split(delimiter)] for line in _LINE_SPLIT_RE.split(text)]


def _cell_to_str(value: Any) -> str:
    if value is None or value is pd.NaT:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def read_spreadsheet(data: bytes) -> Grid:
    """Read the first sheet of a workbook into a Grid.

    Trailing empty cells are dropped per row; short rows are not padded.
    """
    try:
        df = pd.read_excel(io.BytesIO(data), sheet_name=0, header=None, dtype=object)
    except Exception as e:
        raise UnsupportedFormat(f"could not decode spreadsheet: {e}") from e

    grid: Grid = []
    for raw in df.itertuples(index=False, name=None):
        row = [_cell_to_str(v) for v in raw]
        while row and row[-1] == "":
            row.pop()
        grid.append(row)
    return grid


def read_grid(data: bytes | str, hint: str) -> Grid:
    """Decode raw file content into a Grid using the extension/MIME hint."""
    ext = detect_format(hint)
    if ext in TEXT_FORMATS:
        return read_delimited(data, TEXT_FORMATS[ext])
    if isinstance(data, str):
        raise UnsupportedFormat(f"{ext} content must be bytes, got text")
    return read_spreadsheet(data)
