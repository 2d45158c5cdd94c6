from __future__ import annotations

from pathlib import Path

from labqa.cli import main as cli_main

"""Exit code contract tests: 0 all succeeded, 2 any file failed, 1 fatal."""


def test_exit_code_fatal_startup(temp_workdir: Path, capsys):
    # no config/ingest.yml -> exit 1
    code = cli_main([])
    assert code == 1
    assert "ERROR config:" in capsys.readouterr().out


def test_exit_code_fatal_invalid_config(write_config: Path, capsys):
    write_config.write_text("source_directory: ./data\nunknown: 1\n", encoding="utf-8")
    assert cli_main([]) == 1
    assert "config validation failed" in capsys.readouterr().out


def test_exit_code_all_success(write_config, lab_files, capsys):
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY files=2/2 success=2 failed=0" in out


def test_exit_code_partial_failure(write_config, lab_files, temp_workdir: Path, capsys):
    (temp_workdir / "data" / "failure.xlsx").write_bytes(b"")
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 2
    assert "SUMMARY files=3/3 success=2 failed=1" in out
