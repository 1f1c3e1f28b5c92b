"""
Search модуль - индексы, синхронизация и запросы к Elasticsearch
"""
from .index_manager import IndexManager
from .query_builder import QueryBuilder
from .engine import SearchEngine
from .indexer import Indexer
from .cache import SearchCache
from .health import HealthReporter

__all__ = [
    "IndexManager",
    "QueryBuilder",
    "SearchEngine",
    "Indexer",
    "SearchCache",
    "HealthReporter",
]
