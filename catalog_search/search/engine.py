"""
Поисковый движок поверх Elasticsearch
"""
import hashlib
import logging
import time
from typing import List, Dict, Any, Optional

from ..core.config import SearchConfig
from ..core.errors import InvalidQueryError
from ..core.interfaces import ISearchEngine, ICache
from ..core.models import SearchQuery, SearchResult, SearchHit, Suggestion
from .index_manager import IndexManager, ENGINE_ERRORS, response_body
from .query_builder import QueryBuilder, SUGGEST_NAME, as_search_kwargs

logger = logging.getLogger(__name__)


class SearchEngine(ISearchEngine):
    """
    Поисковый движок

    - Поиск: взвешенная релевантность по нескольким полям, фильтры,
      фасеты, сортировка, пагинация и подсветка за один запрос
    - Автодополнение: completion-поле с контекстом категории
    - Похожие товары: more_like_this по терминам исходного товара

    При недоступности движка возвращает пустые результаты: поиск -
    улучшение, а не условие доступности каталога.
    """

    def __init__(
        self,
        manager: IndexManager,
        builder: Optional[QueryBuilder] = None,
        cache: Optional[ICache] = None,
        config: Optional[SearchConfig] = None,
    ):
        self.manager = manager
        self.config = config or SearchConfig()
        self.builder = builder or QueryBuilder(facet_size=self.config.facet_size)
        self.cache = cache

    async def search(self, query: SearchQuery) -> SearchResult:
        """
        Выполнить поиск товаров
        """
        start_time = time.time()

        if query.page_size > self.config.max_page_size:
            raise InvalidQueryError(f"page_size must be <= {self.config.max_page_size}")

        if not await self.manager.ensure_available():
            return SearchResult.empty(query.page, query.page_size)

        # Проверяем кэш
        cache_key = None
        if self.cache:
            cache_key = self._make_cache_key(query)
            cached = await self.cache.get_search_result(cache_key)
            if cached:
                return cached

        body = self.builder.build_search_body(query)
        try:
            response = await self.manager.client.search(
                index=self.manager.products_index,
                **as_search_kwargs(body)
            )
        except ENGINE_ERRORS as e:
            self.manager.handle_error(e, "search")
            return SearchResult.empty(query.page, query.page_size)

        result = self._parse_search_response(response_body(response), query)
        result.took_ms = int((time.time() - start_time) * 1000)

        logger.debug(
            f"[Search] Query: '{query.text or ''}' filters={query.filters.to_dict()} "
            f"-> {result.total} hits in {result.took_ms}ms"
        )

        # Сохраняем в кэш
        if self.cache:
            await self.cache.set_search_result(cache_key, result)

        return result

    async def autocomplete(
        self,
        prefix: str,
        category: Optional[str] = None,
        limit: int = 10
    ) -> List[Suggestion]:
        """
        Получить подсказки для автодополнения
        """
        prefix = (prefix or "").strip()
        if not prefix:
            return []
        if limit < 1:
            raise InvalidQueryError("limit must be > 0")
        limit = min(limit, self.config.max_suggestions_limit)

        if not await self.manager.ensure_available():
            return []

        body = self.builder.build_suggest_body(prefix, category, limit)
        try:
            response = await self.manager.client.search(
                index=self.manager.products_index,
                **as_search_kwargs(body)
            )
        except ENGINE_ERRORS as e:
            self.manager.handle_error(e, "autocomplete")
            return []

        return self._parse_suggestions(response_body(response), limit)

    async def find_similar(self, product_id: str, limit: int = 10) -> List[SearchHit]:
        """
        Получить похожие товары

        Термины берутся из самого товара, исходный товар в выдачу не попадает.
        """
        if not product_id:
            raise InvalidQueryError("product_id is required")
        if limit < 1:
            raise InvalidQueryError("limit must be > 0")
        limit = min(limit, self.config.max_page_size)

        if not await self.manager.ensure_available():
            return []

        body = self.builder.build_similar_body(self.manager.products_index, product_id, limit)
        try:
            response = await self.manager.client.search(
                index=self.manager.products_index,
                **as_search_kwargs(body)
            )
        except ENGINE_ERRORS as e:
            self.manager.handle_error(e, "find similar")
            return []

        hits = response_body(response).get("hits", {}).get("hits", [])
        return [self._to_hit(hit) for hit in hits if hit.get("_id") != product_id]

    # ==================== Приватные методы ====================

    def _parse_search_response(self, body: Dict[str, Any], query: SearchQuery) -> SearchResult:
        hits = body.get("hits", {})

        total = hits.get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)

        aggs = body.get("aggregations") or {}

        return SearchResult(
            documents=[self._to_hit(hit) for hit in hits.get("hits", [])],
            total=int(total),
            page=query.page,
            page_size=query.page_size,
            facets=self._build_facets(aggs),
            aggregates={
                "avg_price": (aggs.get("avg_price") or {}).get("value"),
                "avg_rating": (aggs.get("avg_rating") or {}).get("value"),
            },
        )

    def _to_hit(self, hit: Dict[str, Any]) -> SearchHit:
        return SearchHit(
            id=hit["_id"],
            score=hit.get("_score"),
            source=hit.get("_source") or {},
            highlights=hit.get("highlight") or {},
        )

    def _build_facets(self, aggs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Фасеты для фильтров из агрегаций
        """
        def terms(name: str) -> List[Dict[str, Any]]:
            buckets = (aggs.get(name) or {}).get("buckets", [])
            return [{"value": b["key"], "count": b["doc_count"]} for b in buckets]

        price_buckets = (aggs.get("price_ranges") or {}).get("buckets", [])

        return {
            "categories": terms("categories"),
            "brands": terms("brands"),
            "price_ranges": [
                {
                    "key": b["key"],
                    "from": b.get("from"),
                    "to": b.get("to"),
                    "count": b["doc_count"],
                }
                for b in price_buckets
            ],
        }

    def _parse_suggestions(self, body: Dict[str, Any], limit: int) -> List[Suggestion]:
        entries = (body.get("suggest") or {}).get(SUGGEST_NAME) or []
        options = entries[0].get("options", []) if entries else []

        suggestions = []
        seen = set()
        for option in options:
            text = option.get("text", "")
            key = text.lower()
            if not text or key in seen:
                continue
            seen.add(key)

            category = (option.get("_source") or {}).get("category")
            if category is None:
                category = next(iter(option.get("contexts", {}).get("category", [])), None)

            suggestions.append(Suggestion(
                text=text,
                score=float(option.get("_score") or 0.0),
                category=category,
                id=option.get("_id"),
            ))

        suggestions.sort(key=lambda s: -s.score)
        return suggestions[:limit]

    def _make_cache_key(self, query: SearchQuery) -> str:
        """
        Создание ключа кэша
        """
        parts = [
            query.text or "",
            str(query.page),
            str(query.page_size),
            query.sort.value,
            query.sort_order.value,
        ]
        filters = query.filters.to_dict()
        if filters:
            parts.append(str(sorted(filters.items())))

        key_str = "|".join(parts)
        return hashlib.md5(key_str.encode()).hexdigest()
