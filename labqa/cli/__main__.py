from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, load_config
from ..errors import ConfigError, ProcessingError
from ..logging.init import log_summary, set_debug, setup_logging
from ..services.draft_store import DraftStore
from ..services.metrics import format_value
from ..services.orchestrator import IngestResult, process_all
from ..services.persistence import RecordStore
from ..services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env (python-dotenv, overriding the process environment)
- Load and validate the YAML config
- Ingest every supported file of source_directory
- Print the SUMMARY line and exit with the contract exit code
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _load_env_file(path: Path, override: bool = True) -> None:
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="labqa", description="QA lab-data ingestion and derived metrics")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print recognized sections and first rows then exit")
    p.add_argument("--json", action="store_true", help="Print derived results per file as JSON")
    p.add_argument("--persist", action="store_true", help="Save test records to the REST backend")
    p.add_argument("--strict", action="store_true", help="Reject files with unrecognized sections or columns")
    return p.parse_args(argv)


def _print_inspection(path: Path, result: IngestResult) -> None:
    print(f"FILE: {path.name}")
    print(f"  sections={result.parse.sections_seen} skipped={result.parse.sections_skipped}")
    for test_name, rows in result.grouped.items():
        group = result.derived[test_name]
        print(f"  TEST: {test_name} rows={len(rows)} verdict={group.verdict.value or '-'}")
        for row in rows[:3]:
            print(f"    row {row.row_index}: {dict(row.values)}")
        for key, value in group.summary.items():
            print(f"    {key}={format_value(value, 4)}")
    for d in result.parse.diagnostics:
        print(f"  {d.error_type} row={d.row} {d.message}")


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # only read sys.argv when no explicit argv was given (tests pass [])
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    directory = Path(cfg.source_directory)
    if not directory.exists():
        logger.error(f"directory not found: {directory}")
        return EXIT_FATAL

    if args.strict and not cfg.strict:
        cfg = replace(cfg, strict=True)

    logger.info(f"Processing files from: {directory}")

    if args.inspect_data:
        try:
            process_all(cfg, on_file=_print_inspection, write_error_log=False)
        except ProcessingError as e:
            logger.error(f"inspect: {e}")
            return EXIT_FATAL
        return EXIT_SUCCESS_ALL

    store = None
    if args.persist:
        if cfg.persistence is None:
            logger.error("--persist requires a persistence.base_url (or LABQA_API_BASE_URL)")
            return EXIT_FATAL
        store = RecordStore.from_config(cfg.persistence)
    drafts = DraftStore(cfg.drafts_directory) if cfg.drafts_directory else None

    json_out: list[dict] = []
    on_file = (lambda _p, r: json_out.append(r.to_dict())) if args.json else None

    try:
        result = process_all(cfg, store=store, drafts=drafts, on_file=on_file)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL
    finally:
        if store is not None:
            store.close()

    if args.json:
        print(json.dumps(json_out, ensure_ascii=False, indent=2))

    summary_line = render_summary_line(result)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line[len("SUMMARY "):])

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
