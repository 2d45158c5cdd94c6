from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import httpx

from ..config.test_types import DEFAULT_REGISTRY, TestTypeRegistry
from ..errors import ParseError, PersistenceFailure, ProcessingError, SectionUnrecognized, UnsupportedFormat
from ..excel.reader import SPREADSHEET_FORMATS, TEXT_FORMATS, Grid, detect_format, read_grid
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.config_models import FetchConfig, IngestConfig, MetricParams
from ..models.derived_row import DerivedGroup
from ..models.lab_file import FileStatus, LabFile
from ..models.parse_result import ParseResult
from ..models.parsed_field import MeasurementRow, ParsedField
from ..models.processing_result import FileStat, ProcessingResult
from .draft_store import DraftStore
from .fetch import fetch_file
from .field_mapper import FieldMapper
from .grouping import group_fields
from .metrics import compute_all
from .persistence import RecordStore, build_test_record
from .progress import ProgressTracker
from .section_parser import SectionParser

logger = logging.getLogger(__name__)

"""Ingestion orchestration.

Single-file entry points (ingest_grid / ingest_bytes / ingest_url) run
read -> parse -> group -> compute and return everything the report layer
needs. process_all() is the batch mode used by the CLI: it scans a directory,
ingests each file, records diagnostics to the JSON Lines error log and
optionally persists each test group (falling back to a local draft).
"""

__all__ = [
    "IngestResult",
    "ingest_grid",
    "ingest_bytes",
    "ingest_url",
    "scan_lab_files",
    "process_all",
]

FILE_LEVEL = "<FILE_LEVEL>"


@dataclass(frozen=True)
class IngestResult:
    source: str
    parse: ParseResult
    grouped: dict[str, list[MeasurementRow]] = field(default_factory=dict)
    derived: dict[str, DerivedGroup] = field(default_factory=dict)

    @property
    def fields(self) -> tuple[ParsedField, ...]:
        return self.parse.fields

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "sectionsSeen": self.parse.sections_seen,
            "sectionsSkipped": self.parse.sections_skipped,
            "tests": {name: group.to_dict() for name, group in self.derived.items()},
        }


def ingest_grid(
    grid: Grid,
    *,
    registry: TestTypeRegistry | None = None,
    params: Mapping[str, MetricParams] | None = None,
    strict: bool = False,
    source_name: str = "<grid>",
) -> IngestResult:
    registry = registry or DEFAULT_REGISTRY
    parser = SectionParser(FieldMapper(registry), strict=strict)
    parsed = parser.parse(grid)
    grouped = group_fields(parsed.fields)
    derived = compute_all(grouped, params, registry=registry)
    logger.debug(
        f"{source_name}: {len(parsed.fields)} fields in {len(grouped)} tests "
        f"({parsed.sections_skipped}/{parsed.sections_seen} sections skipped)"
    )
    return IngestResult(source=source_name, parse=parsed, grouped=grouped, derived=derived)


def ingest_bytes(
    data: bytes | str,
    hint: str,
    *,
    registry: TestTypeRegistry | None = None,
    params: Mapping[str, MetricParams] | None = None,
    strict: bool = False,
    source_name: str | None = None,
) -> IngestResult:
    """Decode and ingest raw file content.

    Raises:
        UnsupportedFormat: hint/content not decodable
        ParseError: strict mode only
    """
    grid = read_grid(data, hint)
    return ingest_grid(grid, registry=registry, params=params, strict=strict, source_name=source_name or hint)


def ingest_url(
    url: str,
    *,
    fetch_config: FetchConfig | None = None,
    client: httpx.Client | None = None,
    registry: TestTypeRegistry | None = None,
    params: Mapping[str, MetricParams] | None = None,
    strict: bool = False,
) -> IngestResult:
    """Fetch a file by URL (optionally through the proxy endpoint) and ingest it.

    The URL extension decides the format; the response Content-Type is used
    when the URL has no recognized extension.
    """
    fetch_config = fetch_config or FetchConfig()
    fetched = fetch_file(
        url,
        timeout=fetch_config.timeout,
        proxy_endpoint=fetch_config.proxy_endpoint,
        client=client,
    )
    try:
        hint = url
        detect_format(hint)
    except UnsupportedFormat:
        if not fetched.content_type:
            raise
        hint = fetched.content_type
    return ingest_bytes(fetched.content, hint, registry=registry, params=params, strict=strict, source_name=url)


def scan_lab_files(directory: Path) -> list[Path]:
    """Supported lab-data files in directory (non-recursive), sorted by name.

    Raises:
        ProcessingError: directory missing, not a directory or unreadable
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    suffixes = set(TEXT_FORMATS) | set(SPREADSHEET_FORMATS)
    try:
        return sorted(
            (p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in suffixes),
            key=lambda p: p.name,
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def _params_by_test(config: IngestConfig, registry: TestTypeRegistry) -> dict[str, MetricParams]:
    return {cfg.name: config.params_for(cfg.name) for cfg in registry}


def _save_groups(
    result: IngestResult,
    service_id: str,
    store: RecordStore | None,
    drafts: DraftStore | None,
    error_log: ErrorLogBuffer,
    file_name: str,
) -> tuple[int, str | None]:
    """Persist each test group; unsaved groups go to the draft store.

    Returns:
        (records persisted, first persistence error message or None)
    """
    persisted = 0
    first_error: str | None = None
    for test_type, group in result.derived.items():
        record = build_test_record(service_id, test_type, result.grouped[test_type], group.tolerance)
        if store is not None:
            try:
                store.save(record)
            except PersistenceFailure as e:
                retry = "retryable" if e.retryable else "not retryable"
                logger.error(f"persist {test_type} for {service_id}: {e} ({retry})")
                error_log.append(ErrorRecord.create(
                    file=file_name,
                    section=test_type,
                    row=-1,
                    error_type="PERSISTENCE_FAILURE",
                    message=str(e),
                ))
                first_error = first_error or str(e)
            else:
                persisted += 1
                if drafts is not None:
                    drafts.discard_draft(service_id, test_type)
                continue
        if drafts is not None:
            drafts.save_draft(service_id, test_type, record)
    return persisted, first_error


def _process_single_file(
    file_path: Path,
    config: IngestConfig,
    registry: TestTypeRegistry,
    params: dict[str, MetricParams],
    error_log: ErrorLogBuffer,
    store: RecordStore | None,
    drafts: DraftStore | None,
    on_file: Callable[[Path, IngestResult], None] | None,
) -> LabFile:
    start_time = datetime.now(UTC)

    def _failed(error_type: str, message: str, section: str = FILE_LEVEL) -> LabFile:
        error_log.append(ErrorRecord.create(
            file=file_path.name,
            section=section,
            row=-1,
            error_type=error_type,
            message=message,
        ))
        logger.error(f"{file_path.name}: {message}")
        return LabFile(
            path=file_path,
            name=file_path.name,
            groups=[],
            start_time=start_time,
            end_time=datetime.now(UTC),
            status=FileStatus.FAILED,
            error=message,
        )

    try:
        data = file_path.read_bytes()
        result = ingest_bytes(
            data,
            file_path.name,
            registry=registry,
            params=params,
            strict=config.strict,
            source_name=file_path.name,
        )
    except UnsupportedFormat as e:
        return _failed("UNSUPPORTED_FORMAT", str(e))
    except ParseError as e:
        error_type = "SECTION_UNRECOGNIZED" if isinstance(e, SectionUnrecognized) else "FIELD_UNMAPPED"
        return _failed(error_type, f"strict mode: {e}")
    except OSError as e:
        return _failed("PROCESSING_ERROR", f"read failed: {e}")

    error_log.extend_from_diagnostics(file_path.name, result.parse.diagnostics)
    if on_file is not None:
        on_file(file_path, result)

    persisted = 0
    persist_error = None
    if store is not None or drafts is not None:
        service_id = (config.persistence.service_id if config.persistence else None) or file_path.stem
        persisted, persist_error = _save_groups(result, service_id, store, drafts, error_log, file_path.name)

    return LabFile(
        path=file_path,
        name=file_path.name,
        groups=list(result.derived.values()),
        start_time=start_time,
        end_time=datetime.now(UTC),
        status=FileStatus.FAILED if persist_error else FileStatus.SUCCESS,
        total_fields=len(result.fields),
        sections_seen=result.parse.sections_seen,
        skipped_sections=result.parse.sections_skipped,
        persisted_records=persisted,
        error=f"persistence failed: {persist_error}" if persist_error else None,
    )


def process_all(
    config: IngestConfig,
    *,
    registry: TestTypeRegistry | None = None,
    store: RecordStore | None = None,
    drafts: DraftStore | None = None,
    error_log: ErrorLogBuffer | None = None,
    on_file: Callable[[Path, IngestResult], None] | None = None,
    write_error_log: bool = True,
) -> ProcessingResult:
    """Ingest every supported file in config.source_directory.

    Args:
        config: Ingest configuration
        store: REST record store; None disables persistence
        drafts: Local draft store for groups that were not persisted
        on_file: Callback receiving each successfully ingested file
        write_error_log: Flush buffered diagnostics to logs/; False keeps them
            in error_log only

    Raises:
        ProcessingError: For fatal errors that prevent processing
    """
    start_time = datetime.now(UTC)
    registry = registry or DEFAULT_REGISTRY
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    params = _params_by_test(config, registry)

    file_paths = scan_lab_files(Path(config.source_directory))

    file_stats: list[FileStat] = []
    success_count = 0
    failed_count = 0
    total_fields = 0
    total_sections = 0
    skipped_sections = 0

    with ProgressTracker(len(file_paths)) as progress:
        for file_path in file_paths:
            progress.start_file(file_path)
            lab_file = _process_single_file(
                file_path, config, registry, params, error_log, store, drafts, on_file,
            )
            if lab_file.status == FileStatus.SUCCESS:
                success_count += 1
            else:
                failed_count += 1
            total_fields += lab_file.total_fields
            total_sections += lab_file.sections_seen
            skipped_sections += lab_file.skipped_sections

            progress.set_postfix(success=success_count, failed=failed_count, fields=total_fields)
            progress.finish_file(success=(lab_file.status == FileStatus.SUCCESS))

            elapsed = 0.0
            if lab_file.start_time and lab_file.end_time:
                elapsed = (lab_file.end_time - lab_file.start_time).total_seconds()
            file_stats.append(FileStat(
                file_name=file_path.name,
                status=lab_file.status.value,
                parsed_fields=lab_file.total_fields,
                sections=lab_file.sections_seen,
                skipped_sections=lab_file.skipped_sections,
                elapsed_seconds=elapsed,
                persisted_records=lab_file.persisted_records,
                error=lab_file.error,
            ))
            logger.info(
                f"{file_path.name}: {lab_file.status.value} fields={lab_file.total_fields} "
                f"sections={lab_file.sections_seen} skipped={lab_file.skipped_sections}"
            )

    if write_error_log:
        try:
            log_path = error_log.flush()
        except OSError as e:
            # diagnostics are best effort; the run result still stands
            logger.warning(f"could not write error log: {e}")
        else:
            if log_path is not None:
                logger.info(f"diagnostics written to {log_path}")

    end_time = datetime.now(UTC)
    return ProcessingResult(
        success_files=success_count,
        failed_files=failed_count,
        total_fields=total_fields,
        total_sections=total_sections,
        skipped_sections=skipped_sections,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
    )
