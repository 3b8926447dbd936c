"""Custom exception hierarchy for dictionary-ingest."""


class DictionaryIngestError(Exception):
    """Base exception for all dictionary-ingest errors."""


class DocumentParseError(DictionaryIngestError):
    """Provider document root is unusable (not a mapping, no headword)."""


class ConfigError(DictionaryIngestError):
    """Invalid configuration file or value."""

    def __init__(self, message: str, line: int | None = None):
        self.line = line
        super().__init__(message)


class EntityNotFoundError(DictionaryIngestError):
    """Entity doesn't exist in the database."""


class DatabaseError(DictionaryIngestError):
    """Schema version mismatch, connection failure."""


class TransactionConflictError(DictionaryIngestError):
    """The document transaction was aborted; nothing was committed.

    Raised for serialization conflicts (database locked or busy). The whole
    document may be retried.
    """

    retryable = True


class TransactionTimeoutError(TransactionConflictError):
    """The document transaction exceeded its time budget."""
