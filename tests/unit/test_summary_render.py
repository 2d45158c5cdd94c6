from __future__ import annotations

import doctest
from datetime import datetime, timezone

import labqa.services.summary as summary_module
from labqa.models.processing_result import FileStat, ProcessingResult
from labqa.services.summary import render_summary_line


def _result(**overrides) -> ProcessingResult:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    values = dict(
        success_files=2,
        failed_files=1,
        total_fields=40,
        total_sections=5,
        skipped_sections=1,
        start_time=start,
        end_time=start,
        elapsed_seconds=1.23456,
    )
    values.update(overrides)
    return ProcessingResult(**values)


def test_render_summary_line():
    assert render_summary_line(_result()) == (
        "SUMMARY files=3/3 success=2 failed=1 fields=40 sections=5 skipped_sections=1 elapsed_sec=1.235"
    )


def test_render_summary_elapsed_formats():
    assert render_summary_line(_result(elapsed_seconds=0.0)).endswith("elapsed_sec=0")
    assert render_summary_line(_result(elapsed_seconds=3.0)).endswith("elapsed_sec=3")
    assert render_summary_line(_result(elapsed_seconds=0.0042)).endswith("elapsed_sec=0.0042")


def test_total_files_and_file_stats():
    stat = FileStat("a.csv", "success", parsed_fields=6, sections=1, skipped_sections=0, elapsed_seconds=0.1)
    result = _result(file_stats=[stat])
    assert result.total_files == 3
    assert result.file_stats[0].persisted_records == 0


def test_docstring_example():
    failures, _ = doctest.testmod(summary_module)
    assert failures == 0
