from __future__ import annotations

"""Exception hierarchy for the ingestion pipeline.

Parse-stage problems are normally recovered and recorded as diagnostics; the
ParseError subclasses are raised only when strict mode is enabled. Transport
errors (fetch, persistence) carry a ``retryable`` flag for the caller.
"""

__all__ = [
    "LabQAError",
    "ConfigError",
    "InputError",
    "UnsupportedFormat",
    "FetchError",
    "ParseError",
    "SectionUnrecognized",
    "FieldUnmapped",
    "PersistenceFailure",
    "ProcessingError",
]


class LabQAError(Exception):
    """Base exception for the package."""


class ConfigError(LabQAError):
    pass


class InputError(LabQAError):
    """The input file could not be acquired or decoded."""


class UnsupportedFormat(InputError):
    """Raised when the extension/MIME hint or the content is not decodable."""


class FetchError(InputError):
    """File acquisition by URL failed or was interrupted."""

    def __init__(self, message: str, *, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class ParseError(LabQAError):
    pass


class SectionUnrecognized(ParseError):
    def __init__(self, title: str) -> None:
        super().__init__(f"unrecognized section title: {title!r}")
        self.title = title


class FieldUnmapped(ParseError):
    def __init__(self, test_type: str, label: str) -> None:
        super().__init__(f"unmapped field {label!r} in test {test_type!r}")
        self.test_type = test_type
        self.label = label


class PersistenceFailure(LabQAError):
    """Saving to (or loading from) the REST collaborator failed."""

    def __init__(self, message: str, *, retryable: bool = True, status_code: int | None = None) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code


class ProcessingError(LabQAError):
    """Fatal batch-level error (e.g. source directory missing)."""
