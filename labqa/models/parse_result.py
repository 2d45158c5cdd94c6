from __future__ import annotations

from dataclasses import dataclass, field

from .parsed_field import ParsedField

"""Section parser output models."""

__all__ = [
    "ParseDiagnostic",
    "ParseResult",
]


@dataclass(frozen=True)
class ParseDiagnostic:
    error_type: str  # SECTION_UNRECOGNIZED | FIELD_UNMAPPED | ROW_UNRECOGNIZED
    section: str
    row: int  # 1-based grid row
    message: str


@dataclass(frozen=True)
class ParseResult:
    fields: tuple[ParsedField, ...] = ()
    diagnostics: tuple[ParseDiagnostic, ...] = ()
    sections_seen: int = 0
    sections_skipped: int = 0

    @property
    def test_names(self) -> list[str]:
        seen: dict[str, None] = {}
        for f in self.fields:
            seen.setdefault(f.test_name, None)
        return list(seen)

    def count(self, error_type: str) -> int:
        return sum(1 for d in self.diagnostics if d.error_type == error_type)
