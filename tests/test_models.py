"""Tests for data models: validation, catalog conversion and index projection."""

from datetime import datetime, timezone

import pytest
from hypothesis import given, settings, strategies as st

from catalog_search.core.errors import InvalidDocumentError, InvalidQueryError
from catalog_search.core.models import (
    SearchDocument,
    SearchFilters,
    SearchQuery,
    SearchHit,
    SearchResult,
    SearchLogEntry,
    BulkIndexResult,
    HealthStatus,
    SortField,
    SortOrder,
    UNCATEGORIZED,
    MAX_SUGGEST_WEIGHT,
    MAX_RESULT_WINDOW,
)


# ==================== SearchDocument ====================

def test_document_requires_id_and_name():
    with pytest.raises(InvalidDocumentError):
        SearchDocument(id="", name="Headphones")
    with pytest.raises(InvalidDocumentError):
        SearchDocument(id="p1", name="")


@pytest.mark.parametrize("field_name,value", [
    ("price", -1.0),
    ("rating", 5.5),
    ("rating", -0.1),
    ("num_reviews", -1),
    ("stock", -3),
    ("views", -1),
    ("sales", -1),
    ("price", float("nan")),
    ("price", float("inf")),
    ("rating", float("nan")),
    ("original_price", float("nan")),
])
def test_document_rejects_out_of_range_values(field_name, value):
    with pytest.raises(InvalidDocumentError):
        SearchDocument(id="p1", name="Headphones", **{field_name: value})


def test_document_is_also_a_value_error():
    with pytest.raises(ValueError):
        SearchDocument(id="p1", name="Headphones", price=-5)


def test_tags_are_a_set_preserving_order():
    doc = SearchDocument(id="p1", name="Headphones", tags=["audio", "", "bluetooth", "audio"])
    assert doc.tags == ["audio", "bluetooth"]


def test_discount_computed_from_original_price():
    doc = SearchDocument(id="p1", name="Headphones", price=75.0, original_price=100.0)
    assert doc.discount == 25


def test_explicit_discount_is_kept():
    doc = SearchDocument(id="p1", name="Headphones", price=75.0, original_price=100.0, discount=10)
    assert doc.discount == 10


def test_suggest_input_is_name_and_tags(headphones):
    assert headphones.suggest_input == ["Wireless Headphones", "bluetooth", "noise cancelling"]


def test_suggest_context_defaults_to_uncategorized():
    doc = SearchDocument(id="p1", name="Headphones")
    assert doc.suggest_context == UNCATEGORIZED


def test_suggest_weight_grows_with_sales_and_is_capped():
    assert SearchDocument(id="p1", name="A").suggest_weight == 1
    assert SearchDocument(id="p1", name="A", sales=99).suggest_weight == 100
    assert SearchDocument(id="p1", name="A", sales=MAX_SUGGEST_WEIGHT).suggest_weight == MAX_SUGGEST_WEIGHT


def test_indexed_attributes_keep_allow_listed_scalars_only():
    doc = SearchDocument(
        id="p1",
        name="Headphones",
        attributes={
            "color": "black",
            "weight": 250,
            "wireless": True,
            "size": {"w": 1},
            "internal_sku": "X-1",
        },
    )
    attrs = doc.indexed_attributes(["color", "weight", "wireless", "size"])
    assert attrs == {"color": "black", "weight": "250", "wireless": "true"}


def test_to_source_uses_index_field_names(headphones):
    source = headphones.to_source(["color", "warranty"])

    assert source["id"] == "p1"
    assert source["originalPrice"] == 129.99
    assert source["numReviews"] == 812
    assert source["attributes"] == {"color": "black", "warranty": "2 years"}
    assert source["suggest"] == {
        "input": ["Wireless Headphones", "bluetooth", "noise cancelling"],
        "weight": 341,
        "contexts": {"category": ["audio"]},
    }


def test_from_catalog_reads_camel_case_record():
    doc = SearchDocument.from_catalog({
        "_id": 507,
        "name": "Wireless Headphones",
        "price": "99.5",
        "originalPrice": 120,
        "numReviews": "12",
        "stock": 3,
        "tags": "audio",
        "seller": {"_id": "s-9", "name": "Shop"},
        "createdAt": "2024-01-05T10:00:00Z",
    })

    assert doc.id == "507"
    assert doc.price == 99.5
    assert doc.original_price == 120.0
    assert doc.num_reviews == 12
    assert doc.tags == ["audio"]
    assert doc.seller == "s-9"
    assert doc.created_at == datetime(2024, 1, 5, 10, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("record", [
    {"name": "No id"},
    {"id": "p1", "name": "Bad price", "price": "cheap"},
    {"id": "p1", "name": "NaN price", "price": "nan"},
    {"id": "p1", "name": "Bad date", "createdAt": "yesterday"},
    {"id": "p1"},
])
def test_from_catalog_rejects_malformed_records(record):
    with pytest.raises(InvalidDocumentError):
        SearchDocument.from_catalog(record)


# ==================== SearchQuery ====================

def test_filters_reject_inverted_price_range():
    with pytest.raises(InvalidQueryError):
        SearchFilters(price_min=100, price_max=50)


@pytest.mark.parametrize("kwargs", [
    {"price_min": -1},
    {"price_max": -1},
    {"min_rating": 6},
    {"price_min": float("nan")},
    {"price_max": float("inf")},
    {"min_rating": float("nan")},
])
def test_filters_reject_invalid_values(kwargs):
    with pytest.raises(InvalidQueryError):
        SearchFilters(**kwargs)


def test_filters_to_dict_drops_inactive_filters():
    filters = SearchFilters(category="audio", price_max=100)
    assert filters.to_dict() == {"category": "audio", "price_max": 100}
    assert SearchFilters().is_empty


def test_query_normalizes_whitespace():
    assert SearchQuery(text="  wireless   headphones ").text == "wireless headphones"
    assert SearchQuery(text="   ").text is None


@pytest.mark.parametrize("kwargs", [
    {"page": 0},
    {"page_size": 0},
    {"sort": "cheapest"},
    {"sort_order": "up"},
    {"page": 1000, "page_size": 20},
    {"page": 101, "page_size": 100},
])
def test_query_rejects_invalid_paging_and_sort(kwargs):
    with pytest.raises(InvalidQueryError):
        SearchQuery(**kwargs)


def test_last_page_inside_result_window_is_accepted():
    query = SearchQuery(page=500, page_size=20)
    assert query.offset + query.page_size == MAX_RESULT_WINDOW


def test_from_params_resolves_sort_aliases():
    query = SearchQuery.from_params(text="tv", sort="price_desc")
    assert query.sort == SortField.PRICE
    assert query.sort_order == SortOrder.DESC

    query = SearchQuery.from_params(text="tv", sort="popular")
    assert query.sort == SortField.POPULARITY


def test_from_params_explicit_order_wins():
    query = SearchQuery.from_params(sort="price", order="desc", category="audio")
    assert query.sort_order == SortOrder.DESC
    assert query.filters.category == "audio"


@given(page=st.integers(min_value=1, max_value=100), page_size=st.integers(min_value=1, max_value=100))
@settings(max_examples=100)
def test_offset_matches_page_arithmetic(page, page_size):
    query = SearchQuery(page=page, page_size=page_size)
    assert query.offset == (page - 1) * page_size


# ==================== Results ====================

@given(total=st.integers(min_value=0, max_value=100_000), page_size=st.integers(min_value=1, max_value=100))
@settings(max_examples=100)
def test_pages_is_ceiling_of_total_over_page_size(total, page_size):
    result = SearchResult(documents=[], total=total, page_size=page_size)
    assert result.pages * page_size >= total
    assert (result.pages - 1) * page_size < total or total == 0


def test_hit_to_dict_hides_suggest_field():
    hit = SearchHit(
        id="p1",
        score=3.2,
        source={"name": "Headphones", "suggest": {"input": ["Headphones"]}},
        highlights={"name": ["<mark>Headphones</mark>"]},
    )
    data = hit.to_dict()
    assert "suggest" not in data
    assert data["id"] == "p1"
    assert data["score"] == 3.2
    assert data["highlights"] == {"name": ["<mark>Headphones</mark>"]}


def test_result_survives_cache_serialization():
    result = SearchResult(
        documents=[SearchHit(id="p1", score=1.0, source={"name": "Headphones"})],
        total=1,
        page=2,
        page_size=5,
        facets={"categories": [{"value": "audio", "count": 1}]},
    )
    restored = SearchResult.from_dict(result.to_dict())
    assert restored == result


def test_empty_result_marks_engine_unavailable():
    result = SearchResult.empty(page=3, page_size=10)
    assert result.documents == []
    assert result.total == 0
    assert result.pages == 0
    assert result.available is False


def test_log_entry_source_uses_index_field_names():
    ts = datetime(2024, 5, 1, tzinfo=timezone.utc)
    entry = SearchLogEntry(query="tv", user_id="u1", results_count=0, timestamp=ts)
    assert entry.to_source() == {
        "query": "tv",
        "userId": "u1",
        "sessionId": None,
        "resultsCount": 0,
        "clickedProduct": None,
        "filters": {},
        "timestamp": "2024-05-01T00:00:00+00:00",
    }


def test_bulk_result_collects_failures():
    result = BulkIndexResult(indexed=2)
    assert result.ok
    result.add_failure("p9", "mapper_parsing_exception")
    assert not result.ok
    assert result.failed_ids == ["p9"]
    assert result.errors == {"p9": "mapper_parsing_exception"}


@pytest.mark.parametrize("status,healthy", [
    ("green", True),
    ("yellow", True),
    ("red", False),
    (HealthStatus.DISCONNECTED, False),
    (HealthStatus.ERROR, False),
])
def test_health_status_classification(status, healthy):
    assert HealthStatus(status=status).healthy is healthy


def test_health_status_to_dict():
    status = HealthStatus(status="green", node_count=3, active_shards=6, document_count=1000)
    assert status.to_dict() == {
        "status": "green",
        "nodeCount": 3,
        "activeShards": 6,
        "documentCount": 1000,
    }


def test_health_status_to_dict_includes_analytics_counters():
    status = HealthStatus(status="green", analytics={"written": 3, "failed": 1})
    assert status.to_dict()["analytics"] == {"written": 3, "failed": 1}
