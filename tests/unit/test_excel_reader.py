from __future__ import annotations
import io
import pandas as pd
import pytest
from labqa.errors import UnsupportedFormat
from labqa.excel.reader import detect_format, read_delimited, read_grid, read_spreadsheet


def _xlsx_bytes(rows: list[list[object]], extra_sheet: bool = False) -> bytes:
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name="Report", header=False, index=False)
        if extra_sheet:
            pd.DataFrame([["TEST: TUBE HOUSING LEAKAGE"]]).to_excel(
                writer, sheet_name="Second", header=False, index=False
            )
    return buf.getvalue()


@pytest.mark.parametrize(
    "hint, expected",
    [
        ("report.csv", ".csv"),
        ("REPORT.XLSX", ".xlsx"),
        (".tsv", ".tsv"),
        ("https://files.example.com/a/b/report.xls?token=abc#p1", ".xls"),
        ("text/csv; charset=utf-8", ".csv"),
        ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", ".xlsx"),
        ("application/vnd.oasis.opendocument.spreadsheet", ".ods"),
    ],
)
def test_detect_format(hint: str, expected: str):
    assert detect_format(hint) == expected


@pytest.mark.parametrize("hint", ["", "report.pdf", "image/png", "noext"])
def test_detect_format_unsupported(hint: str):
    with pytest.raises(UnsupportedFormat):
        detect_format(hint)


def test_read_delimited_trims_and_splits_all_line_endings():
    grid = read_delimited(b"TEST: X\r\n a , b \rc\n", ",")
    assert grid == [["TEST: X"], ["a", "b"], ["c"], [""]]


def test_read_delimited_strips_bom_and_falls_back_to_latin1():
    assert read_delimited("\ufeffkV,80".encode("utf-8"))[0] == ["kV", "80"]
    assert read_delimited("Loc\xe1tion,1".encode("latin-1"))[0] == ["Loc\xe1tion", "1"]


def test_read_grid_tsv():
    grid = read_grid("mA Station\tMeasured mR 1\n100\t5.0", "x.tsv")
    assert grid == [["mA Station", "Measured mR 1"], ["100", "5.0"]]


def test_read_spreadsheet_first_sheet_only_and_coerces_cells():
    data = _xlsx_bytes(
        [
            ["TEST: LINEARITY OF mA LOADING", None, None],
            ["mA Station", "Measured mR 1", "Measured mR 2"],
            [100, 5.0, 5.25],
        ],
        extra_sheet=True,
    )
    grid = read_spreadsheet(data)
    assert grid[0] == ["TEST: LINEARITY OF mA LOADING"]
    assert grid[1] == ["mA Station", "Measured mR 1", "Measured mR 2"]
    # integral floats lose the ".0", other numbers keep str()
    assert grid[2] == ["100", "5", "5.25"]
    assert all("LEAKAGE" not in c for row in grid for c in row)


def test_read_spreadsheet_garbage_is_unsupported():
    with pytest.raises(UnsupportedFormat):
        read_spreadsheet(b"definitely not a workbook")


def test_read_grid_rejects_text_for_spreadsheet():
    with pytest.raises(UnsupportedFormat):
        read_grid("a,b", "report.xlsx")
