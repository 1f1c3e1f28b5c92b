"""
End-to-end scenarios against a live Elasticsearch.

Run with ELASTICSEARCH_URL pointing at a disposable cluster; every test
creates its own uniquely prefixed indices and deletes them afterwards.
"""

import os
import uuid
from contextlib import asynccontextmanager

import pytest

from catalog_search.core.config import Config
from catalog_search.core.models import SearchDocument, SearchQuery, SearchFilters
from catalog_search.service import CatalogSearchService


pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not os.getenv("ELASTICSEARCH_URL"),
        reason="ELASTICSEARCH_URL is not set",
    ),
]


CATALOG = [
    SearchDocument(
        id="p1",
        name="Wireless Headphones",
        description="Over-ear wireless headphones with noise cancelling",
        category="audio",
        brand="Sony",
        price=99.99,
        rating=4.6,
        stock=10,
        tags=["bluetooth"],
        sales=340,
    ),
    SearchDocument(
        id="p2",
        name="Wired Earbuds",
        description="In-ear earbuds with a braided cable",
        category="audio",
        brand="Sony",
        price=19.99,
        rating=4.1,
        stock=50,
        sales=900,
    ),
    SearchDocument(
        id="p3",
        name="Headphones Wireless Charging Stand",
        description="Charging stand for headphones",
        category="accessories",
        brand="Anker",
        price=39.0,
        rating=4.3,
        stock=0,
        sales=60,
    ),
]


@asynccontextmanager
async def running_service():
    config = Config.from_env()
    config.elasticsearch.index_prefix = f"it_{uuid.uuid4().hex[:10]}"
    config.redis.url = None

    service = CatalogSearchService(config)
    assert await service.init() is True
    try:
        yield service
    finally:
        await service.manager.client.indices.delete(
            index=[service.manager.products_index, service.manager.search_logs_index],
            ignore_unavailable=True,
        )
        await service.close()


async def seeded_service_search(service, query):
    await service.bulk_index(CATALOG, refresh=True)
    return await service.search(query, log=False)


@pytest.mark.asyncio
async def test_search_finds_and_highlights_product():
    async with running_service() as service:
        result = await seeded_service_search(service, SearchQuery(text="wireless headphones"))

        ids = [hit.id for hit in result.documents]
        assert "p1" in ids
        p1 = result.documents[ids.index("p1")]
        assert "<mark>" in p1.highlights["name"][0]
        assert result.available


@pytest.mark.asyncio
async def test_price_filter_excludes_expensive_products():
    async with running_service() as service:
        result = await seeded_service_search(
            service,
            SearchQuery(text="headphones", filters=SearchFilters(price_max=50)),
        )

        ids = {hit.id for hit in result.documents}
        assert "p1" not in ids
        assert all(hit.source["price"] <= 50 for hit in result.documents)


@pytest.mark.asyncio
async def test_indexed_product_is_found_and_excluded_by_price_filter():
    p1 = SearchDocument(
        id="p1",
        name="Wireless Headphones",
        category="Electronics",
        price=149.99,
        rating=4.5,
        stock=10,
    )
    async with running_service() as service:
        await service.index_product(p1, refresh=True)

        found = await service.search(SearchQuery(text="headphones"), log=False)
        assert [hit.id for hit in found.documents] == ["p1"]
        assert found.documents[0].score > 0
        assert any("Headphones" in fragment for fragment in found.documents[0].highlights["name"])

        filtered = await service.search(
            SearchQuery(
                text="headphones",
                filters=SearchFilters(category="Electronics", price_max=100),
            ),
            log=False,
        )
        assert filtered.documents == []
        assert filtered.total == 0


@pytest.mark.asyncio
async def test_min_rating_filter_applies_to_returned_documents():
    async with running_service() as service:
        await service.bulk_index(CATALOG, refresh=True)

        for min_rating in (0, 4.1, 4.2, 4.5, 4.6, 4.7):
            result = await service.search(
                SearchQuery(filters=SearchFilters(min_rating=min_rating)),
                log=False,
            )
            expected = {doc.id for doc in CATALOG if doc.rating >= min_rating}

            assert {hit.id for hit in result.documents} == expected
            assert all(hit.source["rating"] >= min_rating for hit in result.documents)


@pytest.mark.asyncio
async def test_typo_tolerance():
    async with running_service() as service:
        result = await seeded_service_search(service, SearchQuery(text="wireles headphnes"))

        assert "p1" in [hit.id for hit in result.documents]


@pytest.mark.asyncio
async def test_exact_phrase_ranks_first():
    async with running_service() as service:
        result = await seeded_service_search(service, SearchQuery(text="wireless headphones"))

        assert result.documents[0].id == "p1"


@pytest.mark.asyncio
async def test_autocomplete():
    async with running_service() as service:
        await service.bulk_index(CATALOG, refresh=True)

        suggestions = await service.autocomplete("wire")
        assert "Wireless Headphones" in [s.text for s in suggestions]

        audio_only = await service.autocomplete("wire", category="accessories")
        assert "Wireless Headphones" not in [s.text for s in audio_only]

        assert await service.autocomplete("xyz123") == []


@pytest.mark.asyncio
async def test_find_similar_excludes_seed():
    async with running_service() as service:
        await service.bulk_index(CATALOG, refresh=True)

        hits = await service.find_similar("p1", limit=5)

        assert "p1" not in [hit.id for hit in hits]


@pytest.mark.asyncio
async def test_bulk_index_thousand_documents():
    docs = [
        SearchDocument(id=f"bulk-{i}", name=f"Product {i}", price=float(i % 300), sales=i)
        for i in range(1000)
    ]
    async with running_service() as service:
        result = await service.bulk_index(docs, refresh=True)

        assert result.ok
        assert result.indexed == 1000
        health = await service.health_check()
        assert health.document_count == 1000


@pytest.mark.asyncio
async def test_reindex_is_idempotent():
    async with running_service() as service:
        await service.index_product(CATALOG[0], refresh=True)
        await service.index_product(CATALOG[0], refresh=True)

        result = await service.search(SearchQuery(text="wireless"), log=False)

        assert [hit.id for hit in result.documents].count("p1") == 1
        assert (await service.health_check()).document_count == 1


@pytest.mark.asyncio
async def test_delete_missing_product():
    async with running_service() as service:
        assert await service.delete_product("never-indexed") is True


@pytest.mark.asyncio
async def test_pagination_is_complete_and_disjoint():
    docs = [SearchDocument(id=f"pg-{i:03d}", name=f"Lamp {i}", price=10.0) for i in range(45)]
    async with running_service() as service:
        await service.bulk_index(docs, refresh=True)

        seen = []
        first = await service.search(SearchQuery(text="lamp", page_size=10), log=False)
        for page in range(1, first.pages + 1):
            result = await service.search(SearchQuery(text="lamp", page=page, page_size=10), log=False)
            seen.extend(hit.id for hit in result.documents)

        assert first.total == 45
        assert first.pages == 5
        assert len(seen) == len(set(seen)) == 45


@pytest.mark.asyncio
async def test_trending_searches():
    async with running_service() as service:
        await service.bulk_index(CATALOG, refresh=True)
        for text in ["headphones", "headphones", "earbuds", "xyz123"]:
            await service.search(SearchQuery(text=text))
        for _ in range(3):
            service.log_click("earbuds", "p2")

        await service.analytics.queue.join()
        await service.manager.refresh()

        trending = await service.get_trending_searches(limit=2)
        assert [(t.term, t.count) for t in trending] == [("headphones", 2), ("earbuds", 1)]

        zero = await service.get_zero_result_queries()
        assert [t.term for t in zero] == ["xyz123"]
