"""
Trade ingestion across a directory of export documents.

The ingestor lists the export documents in a source location, parses and
normalizes each one (concurrently), deduplicates trades by trade id and
caches the merged set per location until clear_cache() is called.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol

from src.wheel.models import Trade

from .exceptions import (
    DocumentParseError,
    DocumentReadError,
    RecordValidationError,
    SourceAccessError,
)
from .normalizer import NormalizationResult, Ok, TradeNormalizer
from .parser import parse_flex_document

logger = logging.getLogger(__name__)

DEFAULT_SUFFIX = ".xml"
DEFAULT_MAX_WORKERS = 4


class DocumentSource(Protocol):
    """Lists and reads export documents in a source location."""

    def list_documents(self, location: str) -> list[str]:
        """Names of all documents in the location. Raises SourceAccessError."""
        ...

    def read_document(self, location: str, name: str) -> str:
        """Text of one document. Raises DocumentReadError."""
        ...


class FileSystemDocumentSource:
    """Document source backed by a local directory."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def list_documents(self, location: str) -> list[str]:
        path = Path(location)
        try:
            return sorted(entry.name for entry in path.iterdir() if entry.is_file())
        except OSError as e:
            raise SourceAccessError(f"Cannot list export location {location}: {e}") from e

    def read_document(self, location: str, name: str) -> str:
        try:
            return (Path(location) / name).read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentReadError(name, f"read failed: {e}") from e


@dataclass(frozen=True)
class IngestionReport:
    """Outcome of one ingest run over a source location."""

    source: str
    trades: tuple[Trade, ...]
    documents_read: int = 0
    documents_skipped: int = 0
    document_errors: list[str] = field(default_factory=list)
    validation_errors: list[RecordValidationError] = field(default_factory=list)
    duplicates_dropped: int = 0
    version: int = 0

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "trade_count": len(self.trades),
            "documents_read": self.documents_read,
            "documents_skipped": self.documents_skipped,
            "document_errors": list(self.document_errors),
            "validation_errors": [str(e) for e in self.validation_errors],
            "duplicates_dropped": self.duplicates_dropped,
            "version": self.version,
        }


@dataclass
class _DocumentOutcome:
    name: str
    results: list[NormalizationResult]
    error: Optional[str] = None


class TradeIngestor:
    """
    Loads and caches the deduplicated trade set of a source location.

    Instances are independent: each owns its cache and lock. Cache reads
    and the dedup-and-write step are serialized by the lock; document reads
    run outside it.

    Args:
        document_source: Where documents come from (local filesystem by default)
        suffix: Only documents with this suffix are read (case-insensitive)
        max_workers: Thread pool size for reading and parsing documents
        normalizer: Record normalizer (a default one when omitted)
    """

    def __init__(
        self,
        document_source: Optional[DocumentSource] = None,
        suffix: str = DEFAULT_SUFFIX,
        max_workers: int = DEFAULT_MAX_WORKERS,
        normalizer: Optional[TradeNormalizer] = None,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.document_source = document_source or FileSystemDocumentSource()
        self.suffix = suffix.lower()
        self.max_workers = max_workers
        self.normalizer = normalizer or TradeNormalizer()
        self._cache: dict[str, IngestionReport] = {}
        self._lock = threading.Lock()
        self._version = 0
        self._generation = 0

    def ingest(self, source_location) -> list[Trade]:
        """
        Return the deduplicated trades of every export document in a location.

        Cached per location: later calls return the same trades without
        reading documents until clear_cache() is called.

        Args:
            source_location: Directory (or other DocumentSource location)

        Returns:
            Trades in document order, first occurrence of each trade id

        Raises:
            SourceAccessError: If the location cannot be listed
        """
        location = str(source_location)

        with self._lock:
            cached = self._cache.get(location)
            generation = self._generation
        if cached is not None:
            logger.debug(f"Using cached trades for {location} (version {cached.version})")
            return list(cached.trades)

        names = self.document_source.list_documents(location)
        exports = sorted(n for n in names if n.lower().endswith(self.suffix))
        skipped = len(names) - len(exports)
        if skipped:
            logger.debug(f"Skipping {skipped} non-export documents in {location}")

        outcomes = self._load_documents(location, exports)

        with self._lock:
            # Another caller may have finished first
            cached = self._cache.get(location)
            if cached is not None:
                return list(cached.trades)
            report = self._merge(location, outcomes, skipped)
            if generation == self._generation:
                self._cache[location] = report
            else:
                # Cleared mid-read; these documents may already be out of date
                logger.debug(f"Cache cleared during ingest of {location}, not caching")

        logger.info(
            f"Ingested {len(report.trades)} trades from {report.documents_read} "
            f"documents in {location} ({len(report.validation_errors)} rejected, "
            f"{report.duplicates_dropped} duplicates)"
        )
        return list(report.trades)

    def get_report(self, source_location) -> Optional[IngestionReport]:
        """Report of the cached ingest for a location, or None if not cached."""
        with self._lock:
            return self._cache.get(str(source_location))

    def clear_cache(self) -> None:
        """Drop all cached trade sets; the next ingest re-reads documents."""
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
            self._generation += 1
        logger.debug(f"Cleared {count} cached trade sets")

    # Private helper methods

    def _load_documents(self, location: str, names: list[str]) -> list[_DocumentOutcome]:
        if not names:
            return []
        workers = min(self.max_workers, len(names))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            # map() yields in submission order, so the merge stays deterministic
            return list(executor.map(lambda name: self._load_document(location, name), names))

    def _load_document(self, location: str, name: str) -> _DocumentOutcome:
        try:
            text = self.document_source.read_document(location, name)
            records = parse_flex_document(text, name)
        except (DocumentReadError, DocumentParseError) as e:
            logger.error(f"Skipping document {name}: {e}", exc_info=True)
            return _DocumentOutcome(name=name, results=[], error=str(e))

        return _DocumentOutcome(name=name, results=self.normalizer.normalize_all(records, name))

    def _merge(
        self, location: str, outcomes: list[_DocumentOutcome], skipped: int
    ) -> IngestionReport:
        trades: dict[str, Trade] = {}
        validation_errors: list[RecordValidationError] = []
        document_errors: list[str] = []
        duplicates = 0
        documents_read = 0

        for outcome in outcomes:
            if outcome.error is not None:
                document_errors.append(outcome.error)
                continue
            documents_read += 1
            for result in outcome.results:
                if not isinstance(result, Ok):
                    validation_errors.append(result.error)
                    continue
                trade = result.trade
                if trade.trade_id in trades:
                    duplicates += 1
                    logger.debug(
                        f"Dropping duplicate trade {trade.trade_id} from {outcome.name}"
                    )
                    continue
                trades[trade.trade_id] = trade

        self._version += 1
        return IngestionReport(
            source=location,
            trades=tuple(trades.values()),
            documents_read=documents_read,
            documents_skipped=skipped,
            document_errors=document_errors,
            validation_errors=validation_errors,
            duplicates_dropped=duplicates,
            version=self._version,
        )
