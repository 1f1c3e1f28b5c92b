"""
Интерфейсы (абстрактные классы) сервиса поиска
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Iterable
from .models import (
    SearchDocument, SearchQuery, SearchResult, SearchHit, Suggestion,
    SearchLogEntry, TrendingTerm, BulkIndexResult,
)


class ISearchEngine(ABC):
    """Интерфейс поискового движка"""

    @abstractmethod
    async def search(self, query: SearchQuery) -> SearchResult:
        """
        Выполнить поиск товаров

        Args:
            query: Текст, фильтры, сортировка и страница

        Returns:
            SearchResult с документами, фасетами и агрегатами.
            При недоступности движка - пустой результат, без исключения.
        """
        pass

    @abstractmethod
    async def autocomplete(
        self,
        prefix: str,
        category: Optional[str] = None,
        limit: int = 10
    ) -> List[Suggestion]:
        """
        Получить подсказки для автодополнения

        Args:
            prefix: Введённый префикс
            category: Ограничить подсказки категорией
            limit: Количество подсказок
        """
        pass

    @abstractmethod
    async def find_similar(self, product_id: str, limit: int = 10) -> List[SearchHit]:
        """Получить похожие товары (исходный товар исключается)"""
        pass


class IIndexer(ABC):
    """Интерфейс индексатора"""

    @abstractmethod
    async def index_one(self, doc: SearchDocument, refresh: bool = False) -> bool:
        """
        Проиндексировать (upsert) один документ

        Returns:
            True при успехе, без повторных попыток
        """
        pass

    @abstractmethod
    async def bulk_index(
        self,
        docs: Iterable[SearchDocument],
        refresh: bool = False
    ) -> BulkIndexResult:
        """
        Пакетная индексация одним запросом

        Успешно записанные документы не откатываются при ошибках
        в отдельных элементах.
        """
        pass

    @abstractmethod
    async def delete_one(self, product_id: str, refresh: bool = False) -> bool:
        """Удалить документ. Удаление отсутствующего - успех"""
        pass


class ICache(ABC):
    """Интерфейс кэша"""

    @abstractmethod
    async def get_search_result(self, query_hash: str) -> Optional[SearchResult]:
        """Получить закэшированный результат поиска"""
        pass

    @abstractmethod
    async def set_search_result(
        self,
        query_hash: str,
        result: SearchResult,
        ttl: int = 60
    ) -> None:
        """Сохранить результат поиска в кэш"""
        pass

    @abstractmethod
    async def invalidate(self) -> None:
        """Очистить кэш результатов поиска"""
        pass


class IAnalytics(ABC):
    """Интерфейс аналитики"""

    @abstractmethod
    def log_search(self, entry: SearchLogEntry) -> None:
        """
        Записать поисковый запрос

        Не блокирует и не бросает исключений: запись уходит
        в фоновую очередь.
        """
        pass

    @abstractmethod
    async def get_trending_searches(
        self,
        limit: int = 10,
        window: str = "24h"
    ) -> List[TrendingTerm]:
        """Получить популярные запросы за окно"""
        pass

    @abstractmethod
    async def get_zero_result_queries(
        self,
        limit: int = 10,
        window: str = "24h"
    ) -> List[TrendingTerm]:
        """Получить запросы без результатов"""
        pass
