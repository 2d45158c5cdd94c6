from __future__ import annotations
from pathlib import Path

from labqa.cli import main as cli_main


def test_inspect_data_prints_sections_and_metrics(write_config, lab_files, capsys):
    code = cli_main(['--inspect-data'])
    out = capsys.readouterr().out
    assert code == 0
    assert 'FILE: linearity.csv' in out
    assert 'TEST: linearityOfMaLoading rows=2 verdict=Pass' in out
    assert "row 1: {'mA_Station': '100', 'Measured_0': '5.0', 'Measured_1': '5.2'}" in out
    assert 'col=0.0099' in out
    assert 'TEST: radiationLeakageLevel rows=3 verdict=Pass' in out
    # inspection never writes a SUMMARY line
    assert 'SUMMARY' not in out


def test_inspect_data_lists_diagnostics(write_config, temp_workdir: Path, capsys):
    (temp_workdir / 'data' / 'odd.csv').write_text('TEST: SOMETHING ELSE\n', encoding='utf-8')
    code = cli_main(['--inspect-data'])
    out = capsys.readouterr().out
    assert code == 0
    assert 'sections=1 skipped=1' in out
    assert 'SECTION_UNRECOGNIZED row=1' in out
    assert not list((temp_workdir / 'logs').glob('*.log'))
