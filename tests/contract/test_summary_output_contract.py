from __future__ import annotations

import re

from labqa.cli import main as cli_main

"""SUMMARY line format contract test."""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY\s+files=([0-9]+)/(\1)\s+success=([0-9]+)\s+failed=([0-9]+)\s+"
    r"fields=([0-9]+)\s+sections=([0-9]+)\s+skipped_sections=([0-9]+)\s+"
    r"elapsed_sec=([0-9]+\.?[0-9]*)$"
)


def test_summary_pattern_example_line():
    line = (
        "SUMMARY files=2/2 success=2 failed=0 fields=12 sections=2 skipped_sections=0 "
        "elapsed_sec=0.084"
    )
    assert SUMMARY_PATTERN.match(line), "SUMMARY line should match contract regex"


def test_cli_summary_line_matches_contract(write_config, lab_files, capsys):
    assert cli_main([]) == 0
    lines = [ln for ln in capsys.readouterr().out.splitlines() if ln.startswith("SUMMARY")]
    assert len(lines) == 1
    m = SUMMARY_PATTERN.match(lines[0])
    assert m, lines[0]
    assert m.group(1) == "2"
    assert m.group(5) == "12"
    assert m.group(6) == "2"
