"""Custom exceptions for broker export ingestion."""

from enum import Enum
from typing import Optional


class FlexError(Exception):
    """Base exception for export ingestion."""

    pass


class SourceAccessError(FlexError, OSError):
    """The source location could not be listed. Fatal for an ingest call."""

    pass


class DocumentReadError(FlexError):
    """A single export document could not be read."""

    def __init__(self, document: str, message: str):
        self.document = document
        super().__init__(f"{document}: {message}")


class DocumentParseError(FlexError):
    """A single export document is not well-formed."""

    def __init__(self, document: str, message: str):
        self.document = document
        super().__init__(f"{document}: {message}")


class ValidationErrorKind(Enum):
    """Why a trade record was rejected."""

    MISSING_FIELD = "missing_field"
    INVALID_NUMBER = "invalid_number"
    UNSUPPORTED_VALUE = "unsupported_value"


class RecordValidationError(FlexError):
    """
    A trade record failed validation and was skipped.

    Attributes:
        kind: Category of the failure
        field: Attribute name that failed
        trade_id: Trade identifier, if the record carried one
        document: Source document name, if known
    """

    def __init__(
        self,
        kind: ValidationErrorKind,
        field: str,
        message: str,
        trade_id: Optional[str] = None,
        document: Optional[str] = None,
    ):
        self.kind = kind
        self.field = field
        self.trade_id = trade_id
        self.document = document
        super().__init__(message)

    def __str__(self) -> str:
        where = f" in {self.document}" if self.document else ""
        which = f" (trade {self.trade_id})" if self.trade_id else ""
        return f"[{self.kind.value}] {self.field}: {self.args[0]}{which}{where}"


class DateParseError(FlexError):
    """A date attribute could not be parsed; the record keeps a fallback date."""

    def __init__(self, field: str, value: Optional[str]):
        self.field = field
        self.value = value
        super().__init__(f"Could not parse {field}={value!r}")
