"""
Схемы индексов: анализаторы и маппинги

- product_analyzer: lowercase -> snowball -> word_delimiter_graph,
  релевантность по name/description
- autocomplete: lowercase -> edge_ngram(1..20), префиксный поиск
  внутри полнотекстовых полей (name.autocomplete)
- suggest: completion-поле с контекстом категории, независимое
  от анализатора релевантности
"""
from typing import Dict, Any, Iterable

from ..core.config import ElasticsearchConfig


AUTOCOMPLETE_MIN_GRAM = 1
AUTOCOMPLETE_MAX_GRAM = 20

# Длина входа completion-поля (значение Elasticsearch по умолчанию)
SUGGEST_MAX_INPUT_LENGTH = 50


def product_analysis() -> Dict[str, Any]:
    return {
        "analyzer": {
            "product_analyzer": {
                "type": "custom",
                "tokenizer": "standard",
                "filter": ["lowercase", "snowball", "word_delimiter_graph"],
            },
            "autocomplete": {
                "type": "custom",
                "tokenizer": "standard",
                "filter": ["lowercase", "autocomplete_filter"],
            },
            # Запрос не режем на n-граммы, иначе "wire" совпадёт с "w"
            "autocomplete_search": {
                "type": "custom",
                "tokenizer": "standard",
                "filter": ["lowercase"],
            },
        },
        "filter": {
            "autocomplete_filter": {
                "type": "edge_ngram",
                "min_gram": AUTOCOMPLETE_MIN_GRAM,
                "max_gram": AUTOCOMPLETE_MAX_GRAM,
            }
        },
    }


def products_index_body(
    es_config: ElasticsearchConfig,
    attribute_keys: Iterable[str]
) -> Dict[str, Any]:
    """Settings + mappings индекса товаров"""
    return {
        "settings": {
            "number_of_shards": es_config.number_of_shards,
            "number_of_replicas": es_config.number_of_replicas,
            "analysis": product_analysis(),
        },
        "mappings": {
            "dynamic": "strict",
            "properties": {
                "id": {"type": "keyword"},
                "name": {
                    "type": "text",
                    "analyzer": "product_analyzer",
                    "fields": {
                        "autocomplete": {
                            "type": "text",
                            "analyzer": "autocomplete",
                            "search_analyzer": "autocomplete_search",
                        },
                        "keyword": {"type": "keyword", "ignore_above": 256},
                    },
                },
                "description": {"type": "text", "analyzer": "product_analyzer"},
                "category": {"type": "keyword"},
                "brand": {"type": "keyword"},
                "price": {"type": "float"},
                "originalPrice": {"type": "float"},
                "discount": {"type": "integer"},
                "rating": {"type": "float"},
                "numReviews": {"type": "integer"},
                "stock": {"type": "integer"},
                "tags": {"type": "keyword"},
                # Только разрешённые ключи, остальное не индексируется
                "attributes": {
                    "type": "object",
                    "dynamic": False,
                    "properties": {
                        key: {"type": "keyword"} for key in attribute_keys
                    },
                },
                "images": {"type": "object", "enabled": False},
                "seller": {"type": "keyword"},
                "createdAt": {"type": "date"},
                "updatedAt": {"type": "date"},
                "views": {"type": "integer"},
                "sales": {"type": "integer"},
                "suggest": {
                    "type": "completion",
                    "max_input_length": SUGGEST_MAX_INPUT_LENGTH,
                    "contexts": [
                        {"name": "category", "type": "category"}
                    ],
                },
            },
        },
    }


def search_logs_index_body(es_config: ElasticsearchConfig) -> Dict[str, Any]:
    """Settings + mappings индекса логов поиска (append-only)"""
    return {
        "settings": {
            "number_of_shards": es_config.number_of_shards,
            "number_of_replicas": es_config.number_of_replicas,
        },
        "mappings": {
            "properties": {
                "query": {
                    "type": "text",
                    "fields": {
                        "keyword": {"type": "keyword", "ignore_above": 256}
                    },
                },
                "userId": {"type": "keyword"},
                "sessionId": {"type": "keyword"},
                "resultsCount": {"type": "integer"},
                "clickedProduct": {"type": "keyword"},
                "timestamp": {"type": "date"},
                "filters": {"type": "object", "enabled": False},
            }
        },
    }
