"""
Core модуль - модели, интерфейсы, конфигурация, исключения
"""
from .models import (
    SearchDocument,
    SearchFilters,
    SearchQuery,
    SearchHit,
    SearchResult,
    Suggestion,
    SearchLogEntry,
    TrendingTerm,
    BulkIndexResult,
    HealthStatus,
    SortField,
    SortOrder,
)

from .interfaces import (
    ISearchEngine,
    IIndexer,
    ICache,
    IAnalytics,
)

from .errors import (
    SearchServiceError,
    ConnectivityError,
    SchemaError,
    InvalidQueryError,
    InvalidDocumentError,
)

from .config import Config, configure_logging

__all__ = [
    # Models
    "SearchDocument",
    "SearchFilters",
    "SearchQuery",
    "SearchHit",
    "SearchResult",
    "Suggestion",
    "SearchLogEntry",
    "TrendingTerm",
    "BulkIndexResult",
    "HealthStatus",
    "SortField",
    "SortOrder",

    # Interfaces
    "ISearchEngine",
    "IIndexer",
    "ICache",
    "IAnalytics",

    # Errors
    "SearchServiceError",
    "ConnectivityError",
    "SchemaError",
    "InvalidQueryError",
    "InvalidDocumentError",

    # Config
    "Config",
    "configure_logging",
]
