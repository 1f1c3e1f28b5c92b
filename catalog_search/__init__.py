"""
Сервис поиска и подбора товаров каталога поверх Elasticsearch
"""
from .service import CatalogSearchService
from .core.config import Config

__version__ = "1.0.0"

__all__ = [
    "CatalogSearchService",
    "Config",
]
