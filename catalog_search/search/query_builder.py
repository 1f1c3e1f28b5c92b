"""
Построение запросов к Elasticsearch

Чистые функции без обращения к движку: из SearchQuery получается тело
запроса, которое выполняется за один round trip.
"""
import re
from typing import List, Dict, Any, Optional

from ..core.errors import InvalidQueryError
from ..core.models import SearchQuery, SearchFilters, SortField, SortOrder
from .schema import SUGGEST_MAX_INPUT_LENGTH


# Веса полей для релевантности
RELEVANCE_FIELDS = [
    "name^3",
    "name.autocomplete^2",
    "description",
    "brand^2",
    "tags^1.5",
]

# Точное совпадение фразы в названии важнее нечёткого по токенам
NAME_PHRASE_BOOST = 5

# Первые символы термина не подвергаются нечёткому сравнению
FUZZY_PREFIX_LENGTH = 2

PRICE_RANGES = [
    {"key": "Under $50", "to": 50},
    {"key": "$50 - $100", "from": 50, "to": 100},
    {"key": "$100 - $500", "from": 100, "to": 500},
    {"key": "Over $500", "from": 500},
]

SIMILAR_FIELDS = ["name", "description", "category", "tags"]
SIMILAR_MIN_TERM_FREQ = 1
SIMILAR_MIN_DOC_FREQ = 1
SIMILAR_MAX_QUERY_TERMS = 12

HIGHLIGHT_PRE_TAG = "<mark>"
HIGHLIGHT_POST_TAG = "</mark>"
DESCRIPTION_FRAGMENT_SIZE = 150

SUGGEST_NAME = "product_suggestions"

WINDOW_PATTERN = re.compile(r"^\d+[mhd]$")

# Последний ключ сортировки, чтобы страницы не пересекались
TIE_BREAKER = {"id": "asc"}


def validate_window(window: str) -> str:
    """Окно аналитики в формате date math: 30m, 24h, 7d"""
    if not WINDOW_PATTERN.match(window or ""):
        raise InvalidQueryError(f"invalid window {window!r}, expected e.g. '24h' or '7d'")
    return window


class QueryBuilder:
    """Построитель тел запросов для индекса товаров и логов"""

    def __init__(self, facet_size: int = 20):
        self.facet_size = facet_size

    # ==================== Поиск ====================

    def build_search_body(self, query: SearchQuery) -> Dict[str, Any]:
        """
        Полное тело поискового запроса: релевантность, фильтры,
        сортировка, фасеты, пагинация и подсветка
        """
        body = {
            "from": query.offset,
            "size": query.page_size,
            "track_total_hits": True,
            "query": self.build_query(query),
            "sort": self.build_sort(query),
            "aggs": self.build_aggregations(),
            "highlight": self.build_highlight(),
        }
        if query.sort != SortField.RELEVANCE:
            body["track_scores"] = True
        return body

    def build_query(self, query: SearchQuery) -> Dict[str, Any]:
        must = []
        should = []

        if query.text:
            must.append({
                "multi_match": {
                    "query": query.text,
                    "fields": RELEVANCE_FIELDS,
                    "type": "best_fields",
                    "fuzziness": "AUTO",
                    "prefix_length": FUZZY_PREFIX_LENGTH,
                }
            })
            should.append({
                "match_phrase": {
                    "name": {
                        "query": query.text,
                        "boost": NAME_PHRASE_BOOST,
                    }
                }
            })

        bool_query = {
            "must": must or [{"match_all": {}}],
            "filter": self.build_filters(query.filters),
        }
        if should:
            bool_query["should"] = should

        return {"bool": bool_query}

    def build_filters(self, filters: SearchFilters) -> List[Dict[str, Any]]:
        """Фильтры без влияния на скор"""
        result = []

        if filters.category:
            result.append({"term": {"category": filters.category}})

        if filters.brand:
            result.append({"term": {"brand": filters.brand}})

        if filters.price_min is not None or filters.price_max is not None:
            price_range = {}
            if filters.price_min is not None:
                price_range["gte"] = filters.price_min
            if filters.price_max is not None:
                price_range["lte"] = filters.price_max
            result.append({"range": {"price": price_range}})

        if filters.min_rating is not None:
            result.append({"range": {"rating": {"gte": filters.min_rating}}})

        if filters.in_stock_only:
            result.append({"range": {"stock": {"gt": 0}}})

        return result

    def build_sort(self, query: SearchQuery) -> List[Dict[str, Any]]:
        if query.sort == SortField.PRICE:
            sort = [{"price": query.sort_order.value}]
        elif query.sort == SortField.RATING:
            sort = [{"rating": SortOrder.DESC.value}]
        elif query.sort == SortField.NEWEST:
            sort = [{"createdAt": SortOrder.DESC.value}]
        elif query.sort == SortField.POPULARITY:
            sort = [{"sales": SortOrder.DESC.value}, {"views": SortOrder.DESC.value}]
        else:
            sort = [{"_score": SortOrder.DESC.value}]

        sort.append(dict(TIE_BREAKER))
        return sort

    def build_aggregations(self) -> Dict[str, Any]:
        """Фасеты считаются вместе с основным запросом"""
        return {
            "categories": {"terms": {"field": "category", "size": self.facet_size}},
            "brands": {"terms": {"field": "brand", "size": self.facet_size}},
            "price_ranges": {"range": {"field": "price", "ranges": PRICE_RANGES}},
            "avg_price": {"avg": {"field": "price"}},
            "avg_rating": {"avg": {"field": "rating"}},
        }

    def build_highlight(self) -> Dict[str, Any]:
        return {
            "fields": {
                "name": {"number_of_fragments": 0},
                "description": {"fragment_size": DESCRIPTION_FRAGMENT_SIZE},
            },
            "pre_tags": [HIGHLIGHT_PRE_TAG],
            "post_tags": [HIGHLIGHT_POST_TAG],
        }

    # ==================== Подсказки ====================

    def build_suggest_body(
        self,
        prefix: str,
        category: Optional[str] = None,
        limit: int = 10
    ) -> Dict[str, Any]:
        completion = {
            "field": "suggest",
            "size": limit,
            "skip_duplicates": True,
            "fuzzy": {"fuzziness": "AUTO"},
        }
        if category:
            completion["contexts"] = {"category": [category]}

        return {
            "_source": ["category"],
            "suggest": {
                SUGGEST_NAME: {
                    "prefix": prefix[:SUGGEST_MAX_INPUT_LENGTH],
                    "completion": completion,
                }
            },
        }

    # ==================== Похожие товары ====================

    def build_similar_body(
        self,
        products_index: str,
        product_id: str,
        limit: int = 10
    ) -> Dict[str, Any]:
        return {
            "size": limit,
            "query": {
                "bool": {
                    "must": [{
                        "more_like_this": {
                            "fields": SIMILAR_FIELDS,
                            "like": [{"_index": products_index, "_id": product_id}],
                            "min_term_freq": SIMILAR_MIN_TERM_FREQ,
                            "min_doc_freq": SIMILAR_MIN_DOC_FREQ,
                            "max_query_terms": SIMILAR_MAX_QUERY_TERMS,
                        }
                    }],
                    "must_not": [{"ids": {"values": [product_id]}}],
                }
            },
        }

    # ==================== Аналитика ====================

    def build_trending_body(
        self,
        limit: int = 10,
        window: str = "24h",
        zero_results: bool = False
    ) -> Dict[str, Any]:
        filters = [{"range": {"timestamp": {"gte": f"now-{validate_window(window)}"}}}]
        if zero_results:
            filters.append({"term": {"resultsCount": 0}})

        return {
            "size": 0,
            "query": {
                "bool": {
                    "filter": filters,
                    # Клики пишутся в тот же лог, но поиском не являются
                    "must_not": [{"exists": {"field": "clickedProduct"}}],
                }
            },
            "aggs": {
                "trending": {
                    "terms": {"field": "query.keyword", "size": limit}
                }
            },
        }


def as_search_kwargs(body: Dict[str, Any]) -> Dict[str, Any]:
    """Тело запроса -> именованные параметры AsyncElasticsearch.search"""
    renamed = {"from": "from_", "_source": "source"}
    return {renamed.get(key, key): value for key, value in body.items()}
