from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from enum import Enum
from typing import Any

from ..errors import FieldUnmapped, SectionUnrecognized
from ..models.parse_result import ParseDiagnostic, ParseResult
from ..models.parsed_field import ParsedField
from .field_mapper import FieldMapper

"""Section parser: Grid -> flat list of ParsedField.

Single forward pass over the grid, no backtracking.

States:
    SEEKING          before the first marker, or inside an unrecognized section
    NO_HEADER        inside a section, no active header row
    WITH_HEADER      inside a section, data rows are zipped against the header

Transitions:
    "TEST: <title>" row   -> NO_HEADER (known title) / SEEKING (unknown title)
    blank row             -> NO_HEADER, test unchanged (next block gets its own header)
    NO_HEADER + label/value row -> emits pairs, stays NO_HEADER
    NO_HEADER + header row      -> WITH_HEADER
    WITH_HEADER + any row       -> emits mapped cells

Header heuristic: >= 2 cells resolve, or exactly one resolves and the row has
more than two non-empty cells (or that cell is the only one). A data row that
happens to contain two header strings is taken as a header.
"""

__all__ = [
    "MARKER_RE",
    "ParserState",
    "SectionParser",
    "parse_grid",
]

logger = logging.getLogger(__name__)

MARKER_RE = re.compile(r"^TEST\s*:", re.IGNORECASE)


class ParserState(Enum):
    SEEKING = "seeking"
    NO_HEADER = "in_section_no_header"
    WITH_HEADER = "in_section_with_header"


def _normalize_row(raw: Iterable[Any] | None) -> list[str]:
    if raw is None:
        return []
    return ["" if c is None else str(c).strip() for c in raw]


class SectionParser:
    """Stateless between calls; all parse state lives inside parse()."""

    def __init__(self, mapper: FieldMapper | None = None, *, strict: bool = False) -> None:
        self.mapper = mapper or FieldMapper()
        self.strict = strict

    def parse(self, grid: Iterable[Sequence[Any]]) -> ParseResult:
        fields: list[ParsedField] = []
        diagnostics: list[ParseDiagnostic] = []
        counters: dict[str, int] = {}
        reported_unmapped: set[tuple[str, str]] = set()

        state = ParserState.SEEKING
        current: str | None = None
        title = ""
        header: list[str] = []
        sections_seen = 0
        sections_skipped = 0

        for grid_row, raw in enumerate(grid, start=1):
            row = _normalize_row(raw)
            first = row[0] if row else ""

            marker = MARKER_RE.match(first)
            if marker:
                title = first[marker.end():].strip()
                sections_seen += 1
                header = []
                current = self.mapper.resolve_marker(title)
                if current is None:
                    sections_skipped += 1
                    logger.warning(f"section skipped: unrecognized title {title!r} (row {grid_row})")
                    diagnostics.append(ParseDiagnostic(
                        error_type="SECTION_UNRECOGNIZED",
                        section=title,
                        row=grid_row,
                        message=f"no test type matches section title {title!r}",
                    ))
                    if self.strict:
                        raise SectionUnrecognized(title)
                    state = ParserState.SEEKING
                else:
                    logger.debug(f"section {title!r} -> {current} (row {grid_row})")
                    counters.setdefault(current, 0)
                    state = ParserState.NO_HEADER
                continue

            if state is ParserState.SEEKING or current is None:
                continue

            if not any(row):
                header = []
                state = ParserState.NO_HEADER
                continue

            if state is ParserState.NO_HEADER:
                pairs = self._label_value_pairs(current, row)
                if pairs:
                    counters[current] += 1
                    for field_name, value in pairs:
                        fields.append(ParsedField(current, counters[current], field_name, value))
                    continue

                if self._is_header_row(current, row):
                    header = row
                    state = ParserState.WITH_HEADER
                    self._check_header(current, header, grid_row, diagnostics, reported_unmapped)
                    continue

                logger.debug(f"row {grid_row} dropped in {current}: neither header nor label/value row")
                diagnostics.append(ParseDiagnostic(
                    error_type="ROW_UNRECOGNIZED",
                    section=current,
                    row=grid_row,
                    message="row before any header is neither a header nor a label/value row",
                ))
                continue

            # WITH_HEADER: positional zip against the stored header
            counters[current] += 1
            row_index = counters[current]
            for header_cell, value in zip(header, row):
                field_name = self.mapper.resolve(current, header_cell)
                if field_name is not None and value:
                    fields.append(ParsedField(current, row_index, field_name, value))

        return ParseResult(
            fields=tuple(fields),
            diagnostics=tuple(diagnostics),
            sections_seen=sections_seen,
            sections_skipped=sections_skipped,
        )

    def _label_value_pairs(self, test_type: str, row: list[str]) -> list[tuple[str, str]] | None:
        cells = list(row)
        while cells and not cells[-1]:
            cells.pop()
        if len(cells) < 2:
            return None
        # without the flag only a leading [label, value] row qualifies
        if not self.mapper.allows_label_value_pairs(test_type) and len(cells) != 2:
            return None

        pairs: list[tuple[str, str]] = []
        for idx in range(0, len(cells), 2):
            label = cells[idx]
            value = cells[idx + 1] if idx + 1 < len(cells) else ""
            if not label and not value:
                continue
            field_name = self.mapper.resolve(test_type, label)
            if field_name is None or not value:
                return None
            # a value that is itself a header means this is a header row
            if self.mapper.resolve(test_type, value) is not None:
                return None
            pairs.append((field_name, value))

        return pairs or None

    def _is_header_row(self, test_type: str, row: list[str]) -> bool:
        matches = self.mapper.count_matches(test_type, row)
        non_empty = sum(1 for c in row if c)
        if matches >= 2:
            return True
        return matches == 1 and (non_empty > 2 or non_empty == 1)

    def _check_header(
        self,
        test_type: str,
        header: list[str],
        grid_row: int,
        diagnostics: list[ParseDiagnostic],
        reported: set[tuple[str, str]],
    ) -> None:
        for cell in header:
            if not cell or self.mapper.resolve(test_type, cell) is not None:
                continue
            if self.strict:
                raise FieldUnmapped(test_type, cell)
            if (test_type, cell) in reported:
                continue
            reported.add((test_type, cell))
            logger.debug(f"column {cell!r} not mapped for {test_type}; values dropped")
            diagnostics.append(ParseDiagnostic(
                error_type="FIELD_UNMAPPED",
                section=test_type,
                row=grid_row,
                message=f"header {cell!r} has no field mapping",
            ))


def parse_grid(
    grid: Iterable[Sequence[Any]],
    *,
    mapper: FieldMapper | None = None,
    strict: bool = False,
) -> ParseResult:
    return SectionParser(mapper, strict=strict).parse(grid)
