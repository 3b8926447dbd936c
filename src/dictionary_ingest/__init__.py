__version__ = "0.1.0"

from .ingester import DictionaryIngester as DictionaryIngester
from .config import IngestConfig as IngestConfig, load_config as load_config
from .document import ProviderDocument as ProviderDocument, load_documents as load_documents
from .exceptions import (
    DictionaryIngestError as DictionaryIngestError,
    DocumentParseError as DocumentParseError,
    ConfigError as ConfigError,
    EntityNotFoundError as EntityNotFoundError,
    DatabaseError as DatabaseError,
    TransactionConflictError as TransactionConflictError,
    TransactionTimeoutError as TransactionTimeoutError,
)
from .models import (
    PartOfSpeech as PartOfSpeech,
    RelationshipType as RelationshipType,
    SourceType as SourceType,
    IngestSummary as IngestSummary,
)
from .collaborators import (
    AudioDownloadResult as AudioDownloadResult,
    AudioStatus as AudioStatus,
    BackfilledImage as BackfilledImage,
)

__all__ = [
    "__version__",
    "DictionaryIngester",
    "IngestConfig",
    "load_config",
    "ProviderDocument",
    "load_documents",
    "DictionaryIngestError",
    "DocumentParseError",
    "ConfigError",
    "EntityNotFoundError",
    "DatabaseError",
    "TransactionConflictError",
    "TransactionTimeoutError",
    "PartOfSpeech",
    "RelationshipType",
    "SourceType",
    "IngestSummary",
    "AudioDownloadResult",
    "AudioStatus",
    "BackfilledImage",
]
