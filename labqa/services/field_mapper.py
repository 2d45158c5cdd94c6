from __future__ import annotations

from collections.abc import Iterable

from ..config.test_types import DEFAULT_REGISTRY, TestTypeRegistry

"""Field mapper: display header / label string -> canonical field id.

Pure lookup against the static registry. Matching is exact and
case-sensitive; the reader has already trimmed the cell.
"""

__all__ = [
    "FieldMapper",
    "resolve",
]


class FieldMapper:
    def __init__(self, registry: TestTypeRegistry | None = None) -> None:
        self.registry = registry or DEFAULT_REGISTRY

    def resolve(self, test_type: str, label: str) -> str | None:
        cfg = self.registry.get(test_type)
        if cfg is None or not label:
            return None
        return cfg.field_schema.get(label)

    def resolve_marker(self, title: str) -> str | None:
        return self.registry.match_marker(title)

    def count_matches(self, test_type: str, cells: Iterable[str]) -> int:
        """Number of cells that resolve as a header for test_type."""
        return sum(1 for c in cells if self.resolve(test_type, c) is not None)

    def allows_label_value_pairs(self, test_type: str) -> bool:
        cfg = self.registry.get(test_type)
        return bool(cfg and cfg.allows_label_value_pairs)


_default_mapper = FieldMapper()


def resolve(test_type: str, label: str) -> str | None:
    """Module-level shortcut using the default registry."""
    return _default_mapper.resolve(test_type, label)
