"""
Сервис поиска по каталогу - единая точка входа для веб-слоя
"""
import logging
from typing import List, Optional, Iterable, Mapping, Any

import redis.asyncio as redis
from elasticsearch import AsyncElasticsearch

from .core.config import Config
from .core.models import (
    SearchDocument, SearchQuery, SearchResult, SearchHit, Suggestion,
    SearchLogEntry, TrendingTerm, BulkIndexResult, HealthStatus,
)
from .search.index_manager import IndexManager
from .search.engine import SearchEngine
from .search.indexer import Indexer
from .search.cache import SearchCache
from .search.health import HealthReporter
from .analytics.logger import SearchAnalytics

logger = logging.getLogger(__name__)


class CatalogSearchService:
    """
    Фасад над компонентами поиска

    Клиент движка создаётся один раз на экземпляр и разделяется
    всеми компонентами. До вызова init() сервис работает в режиме
    недоступности.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        client: Optional[AsyncElasticsearch] = None,
        redis_client=None,
    ):
        self.config = config or Config()

        self.manager = IndexManager(self.config, client=client)

        self.redis = redis_client
        self._owns_redis = False
        if self.redis is None and self.config.redis.enabled:
            self.redis = redis.from_url(
                self.config.redis.url,
                encoding="utf-8",
                decode_responses=True,
            )
            self._owns_redis = True

        self.cache = None
        if self.redis is not None:
            self.cache = SearchCache(
                self.redis,
                namespace=self.config.elasticsearch.index_prefix,
                ttl=self.config.redis.search_cache_ttl,
            )

        self.engine = SearchEngine(self.manager, cache=self.cache, config=self.config.search)
        self.indexer = Indexer(self.manager, cache=self.cache)
        self.analytics = SearchAnalytics(
            self.manager,
            config=self.config.analytics,
            builder=self.engine.builder,
        )
        self.health = HealthReporter(self.manager)

    @property
    def available(self) -> bool:
        return self.manager.available

    async def init(self) -> bool:
        """
        Подключение, проверка индексов и запуск воркеров аналитики

        Returns:
            True, если поиск доступен
        """
        if await self.manager.connect():
            await self.manager.ensure_schema()
        await self.analytics.start()

        if self.available:
            logger.info("[Search] Catalog search service initialized")
        else:
            logger.warning("[Search] Catalog search service started in unavailable mode")
        return self.available

    async def close(self) -> None:
        await self.analytics.stop()
        await self.manager.close()
        if self._owns_redis and self.cache:
            await self.cache.close()

    # ==================== Поиск ====================

    async def search(
        self,
        query: SearchQuery,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
        log: bool = True,
    ) -> SearchResult:
        """
        Поиск товаров с записью запроса в аналитику
        """
        result = await self.engine.search(query)

        if log and query.text and result.available:
            self.log_search(SearchLogEntry(
                query=query.text,
                user_id=user_id,
                session_id=session_id,
                results_count=result.total,
                filters=query.filters.to_dict(),
            ))

        return result

    async def autocomplete(
        self,
        prefix: str,
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Suggestion]:
        return await self.engine.autocomplete(
            prefix,
            category=category,
            limit=limit or self.config.search.suggestions_limit,
        )

    async def find_similar(self, product_id: str, limit: Optional[int] = None) -> List[SearchHit]:
        return await self.engine.find_similar(
            product_id,
            limit=limit or self.config.search.similar_limit,
        )

    # ==================== Аналитика ====================

    def log_search(self, entry: SearchLogEntry) -> None:
        self.analytics.log_search(entry)

    def log_click(
        self,
        query: str,
        product_id: str,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self.analytics.log_click(query, product_id, user_id=user_id, session_id=session_id)

    async def get_trending_searches(
        self,
        limit: Optional[int] = None,
        window: Optional[str] = None,
    ) -> List[TrendingTerm]:
        return await self.analytics.get_trending_searches(
            limit=limit or self.config.analytics.trending_limit,
            window=window or self.config.analytics.trending_window,
        )

    async def get_zero_result_queries(
        self,
        limit: Optional[int] = None,
        window: Optional[str] = None,
    ) -> List[TrendingTerm]:
        return await self.analytics.get_zero_result_queries(
            limit=limit or self.config.analytics.trending_limit,
            window=window or self.config.analytics.trending_window,
        )

    async def health_check(self) -> HealthStatus:
        """Состояние движка и счётчики фоновой записи логов"""
        status = await self.health.health_check()
        status.analytics = self.analytics.diagnostics()
        return status

    # ==================== Индексация ====================

    async def index_product(self, record: Mapping[str, Any], refresh: bool = False) -> bool:
        """Создание/обновление товара (запись каталога или SearchDocument)"""
        doc = record if isinstance(record, SearchDocument) else SearchDocument.from_catalog(record)
        return await self.indexer.index_one(doc, refresh=refresh)

    async def bulk_index(
        self,
        records: Iterable[Any],
        refresh: bool = False
    ) -> BulkIndexResult:
        docs = [
            record if isinstance(record, SearchDocument) else SearchDocument.from_catalog(record)
            for record in records
        ]
        return await self.indexer.bulk_index(docs, refresh=refresh)

    async def delete_product(self, product_id: str, refresh: bool = False) -> bool:
        return await self.indexer.delete_one(product_id, refresh=refresh)
