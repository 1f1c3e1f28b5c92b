"""Shared fixtures: configuration, mocked engine client and sample responses."""

from unittest.mock import AsyncMock

import pytest
from elastic_transport import ApiResponseMeta, HttpHeaders, NodeConfig

from catalog_search.core.config import Config
from catalog_search.core.models import SearchDocument
from catalog_search.search.index_manager import IndexManager


def api_meta(status: int) -> ApiResponseMeta:
    """Response metadata for constructing elasticsearch ApiError subclasses."""
    return ApiResponseMeta(
        status=status,
        http_version="1.1",
        headers=HttpHeaders(),
        duration=0.0,
        node=NodeConfig("http", "localhost", 9200),
    )


def make_manager(client, available: bool = True, config: Config = None) -> IndexManager:
    manager = IndexManager(config or Config(), client=client)
    manager._available = available
    manager.schema_ready = available
    return manager


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def es_client():
    """AsyncElasticsearch stand-in; every API call is awaitable."""
    client = AsyncMock()
    client.cluster.health.return_value = {
        "status": "green",
        "number_of_nodes": 1,
        "active_shards": 2,
    }
    client.count.return_value = {"count": 0}
    client.indices.exists.return_value = False
    client.index.return_value = {"result": "created"}
    client.delete.return_value = {"result": "deleted"}
    return client


@pytest.fixture
def manager(es_client, config):
    return make_manager(es_client, config=config)


@pytest.fixture
def headphones():
    return SearchDocument(
        id="p1",
        name="Wireless Headphones",
        description="Over-ear wireless headphones with noise cancelling",
        category="audio",
        brand="Sony",
        price=99.99,
        original_price=129.99,
        rating=4.6,
        num_reviews=812,
        stock=25,
        tags=["bluetooth", "noise cancelling"],
        attributes={"color": "black", "warranty": "2 years", "internal_sku": "X-1"},
        sales=340,
    )


@pytest.fixture
def search_response():
    """Body of a products index search with hits, facets and highlights."""
    return {
        "took": 3,
        "hits": {
            "total": {"value": 42, "relation": "eq"},
            "hits": [
                {
                    "_id": "p1",
                    "_score": 7.5,
                    "_source": {
                        "id": "p1",
                        "name": "Wireless Headphones",
                        "price": 99.99,
                        "category": "audio",
                        "suggest": {"input": ["Wireless Headphones"], "weight": 341},
                    },
                    "highlight": {"name": ["<mark>Wireless</mark> <mark>Headphones</mark>"]},
                },
                {
                    "_id": "p3",
                    "_score": 2.1,
                    "_source": {"id": "p3", "name": "Headphones Stand", "price": 39.0},
                },
            ],
        },
        "aggregations": {
            "categories": {"buckets": [
                {"key": "audio", "doc_count": 30},
                {"key": "accessories", "doc_count": 12},
            ]},
            "brands": {"buckets": [{"key": "Sony", "doc_count": 20}]},
            "price_ranges": {"buckets": [
                {"key": "Under $50", "to": 50.0, "doc_count": 10},
                {"key": "$50 - $100", "from": 50.0, "to": 100.0, "doc_count": 25},
                {"key": "$100 - $500", "from": 100.0, "to": 500.0, "doc_count": 7},
                {"key": "Over $500", "from": 500.0, "doc_count": 0},
            ]},
            "avg_price": {"value": 84.5},
            "avg_rating": {"value": 4.2},
        },
    }
