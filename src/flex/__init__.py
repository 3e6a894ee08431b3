"""
Broker export ingestion.

Parses Interactive Brokers Flex XML trade confirmations into canonical
Trade objects, deduplicated across documents.

Public API:
    TradeIngestor: Cached, deduplicating ingest over a source location
    TradeNormalizer: Record validation and Trade construction
    parse_flex_document: Raw document to attribute records
"""

from .exceptions import (
    DateParseError,
    DocumentParseError,
    DocumentReadError,
    FlexError,
    RecordValidationError,
    SourceAccessError,
    ValidationErrorKind,
)
from .ingestor import (
    DocumentSource,
    FileSystemDocumentSource,
    IngestionReport,
    TradeIngestor,
)
from .normalizer import Err, Ok, TradeNormalizer, parse_option_symbol
from .parser import parse_flex_document

__all__ = [
    "TradeIngestor",
    "IngestionReport",
    "DocumentSource",
    "FileSystemDocumentSource",
    "TradeNormalizer",
    "Ok",
    "Err",
    "parse_option_symbol",
    "parse_flex_document",
    # Exceptions
    "FlexError",
    "SourceAccessError",
    "DocumentReadError",
    "DocumentParseError",
    "RecordValidationError",
    "ValidationErrorKind",
    "DateParseError",
]
