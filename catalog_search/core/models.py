"""
Модели данных для сервиса поиска по каталогу
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Iterable, Mapping, Union
from enum import Enum
import logging
import math

from .errors import InvalidDocumentError, InvalidQueryError

logger = logging.getLogger(__name__)


Scalar = Union[str, int, float, bool]

# Контекст подсказок для товаров без категории
UNCATEGORIZED = "uncategorized"

# Максимальный вес подсказки в completion-поле
MAX_SUGGEST_WEIGHT = 2**31 - 1

# index.max_result_window: from + size не может быть больше
MAX_RESULT_WINDOW = 10_000


class SortField(Enum):
    RELEVANCE = "relevance"
    PRICE = "price"
    RATING = "rating"
    NEWEST = "newest"
    POPULARITY = "popularity"


class SortOrder(Enum):
    ASC = "asc"
    DESC = "desc"


# Псевдонимы сортировки из старого API
SORT_ALIASES = {
    "price_asc": (SortField.PRICE, SortOrder.ASC),
    "price_desc": (SortField.PRICE, SortOrder.DESC),
    "popular": (SortField.POPULARITY, None),
}


def _parse_datetime(value: Any, name: str) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise InvalidDocumentError(f"{name} is not an ISO-8601 date: {value!r}")
    raise InvalidDocumentError(f"{name} has unsupported type {type(value).__name__}")


def _number(record: Mapping[str, Any], key: str, cast, default=None):
    value = record.get(key)
    if value is None or value == "":
        return default
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise InvalidDocumentError(f"{key} is not a number: {value!r}")


@dataclass
class SearchDocument:
    """Проекция товара каталога в поисковый индекс"""
    id: str
    name: str

    # Опциональные поля
    description: str = ""
    category: Optional[str] = None
    brand: Optional[str] = None
    price: float = 0.0
    original_price: Optional[float] = None
    discount: Optional[int] = None
    rating: float = 0.0
    num_reviews: int = 0
    stock: int = 0
    tags: List[str] = field(default_factory=list)
    attributes: Dict[str, Scalar] = field(default_factory=dict)
    images: List[Any] = field(default_factory=list)
    seller: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    views: int = 0
    sales: int = 0

    def __post_init__(self):
        if not self.id:
            raise InvalidDocumentError("document id is required")
        if not self.name:
            raise InvalidDocumentError(f"document {self.id} has no name")
        for name in ("price", "rating", "original_price"):
            value = getattr(self, name)
            if value is not None and not math.isfinite(value):
                raise InvalidDocumentError(f"document {self.id}: {name} must be a finite number")
        if self.price < 0:
            raise InvalidDocumentError(f"document {self.id}: price must be >= 0")
        if not 0 <= self.rating <= 5:
            raise InvalidDocumentError(f"document {self.id}: rating must be within [0, 5]")
        for name in ("num_reviews", "stock", "views", "sales"):
            if getattr(self, name) < 0:
                raise InvalidDocumentError(f"document {self.id}: {name} must be >= 0")

        # Теги как множество, порядок сохраняем
        self.tags = list(dict.fromkeys(t for t in self.tags if t))

        # Вычисляем скидку
        if self.discount is None and self.original_price and self.original_price > self.price:
            self.discount = round((1 - self.price / self.original_price) * 100)

    @property
    def suggest_input(self) -> List[str]:
        """Тексты для автодополнения: название и теги"""
        return list(dict.fromkeys([self.name, *self.tags]))

    @property
    def suggest_context(self) -> str:
        return self.category or UNCATEGORIZED

    @property
    def suggest_weight(self) -> int:
        return min(1 + self.sales, MAX_SUGGEST_WEIGHT)

    def indexed_attributes(self, allowed_keys: Optional[Iterable[str]] = None) -> Dict[str, str]:
        """
        Атрибуты для индекса: только разрешённые ключи и скалярные значения
        """
        allowed = set(allowed_keys) if allowed_keys is not None else None
        result = {}
        for key, value in self.attributes.items():
            if allowed is not None and key not in allowed:
                logger.debug(f"[Indexer] Document {self.id}: attribute '{key}' is not indexed")
                continue
            if isinstance(value, bool):
                result[key] = "true" if value else "false"
            elif isinstance(value, (str, int, float)):
                result[key] = str(value)
            else:
                logger.debug(f"[Indexer] Document {self.id}: attribute '{key}' is not a scalar")
        return result

    def to_source(self, allowed_attributes: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """Документ в формате индекса"""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "brand": self.brand,
            "price": self.price,
            "originalPrice": self.original_price,
            "discount": self.discount,
            "rating": self.rating,
            "numReviews": self.num_reviews,
            "stock": self.stock,
            "tags": self.tags,
            "attributes": self.indexed_attributes(allowed_attributes),
            "images": self.images,
            "seller": self.seller,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "views": self.views,
            "sales": self.sales,
            "suggest": {
                "input": self.suggest_input,
                "weight": self.suggest_weight,
                "contexts": {"category": [self.suggest_context]},
            },
        }

    @classmethod
    def from_catalog(cls, record: Mapping[str, Any]) -> "SearchDocument":
        """
        Конвертация записи каталога (camelCase, `_id` или `id`) в документ
        """
        product_id = record.get("id") or record.get("_id")
        if not product_id:
            raise InvalidDocumentError("catalog record has no id")

        seller = record.get("seller")
        if isinstance(seller, Mapping):
            seller = seller.get("_id") or seller.get("id")

        tags = record.get("tags") or []
        if isinstance(tags, str):
            tags = [tags]

        return cls(
            id=str(product_id),
            name=str(record.get("name") or ""),
            description=str(record.get("description") or ""),
            category=record.get("category") or None,
            brand=record.get("brand") or None,
            price=_number(record, "price", float, 0.0),
            original_price=_number(record, "originalPrice", float),
            discount=_number(record, "discount", int),
            rating=_number(record, "rating", float, 0.0),
            num_reviews=_number(record, "numReviews", int, 0),
            stock=_number(record, "stock", int, 0),
            tags=[str(t) for t in tags],
            attributes=dict(record.get("attributes") or {}),
            images=list(record.get("images") or []),
            seller=str(seller) if seller else None,
            created_at=_parse_datetime(record.get("createdAt"), "createdAt"),
            updated_at=_parse_datetime(record.get("updatedAt"), "updatedAt"),
            views=_number(record, "views", int, 0),
            sales=_number(record, "sales", int, 0),
        )


@dataclass
class SearchFilters:
    """Фильтры поиска (не влияют на скор)"""
    category: Optional[str] = None
    brand: Optional[str] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    min_rating: Optional[float] = None
    in_stock_only: bool = False

    def __post_init__(self):
        for name in ("price_min", "price_max", "min_rating"):
            value = getattr(self, name)
            if value is not None and not math.isfinite(value):
                raise InvalidQueryError(f"{name} must be a finite number")
        if self.price_min is not None and self.price_min < 0:
            raise InvalidQueryError("price_min must be >= 0")
        if self.price_max is not None and self.price_max < 0:
            raise InvalidQueryError("price_max must be >= 0")
        if (
            self.price_min is not None
            and self.price_max is not None
            and self.price_min > self.price_max
        ):
            raise InvalidQueryError("price_min must not exceed price_max")
        if self.min_rating is not None and not 0 <= self.min_rating <= 5:
            raise InvalidQueryError("min_rating must be within [0, 5]")

    @property
    def is_empty(self) -> bool:
        return not self.to_dict()

    def to_dict(self) -> Dict[str, Any]:
        """Снимок активных фильтров (для логов и ключа кэша)"""
        return {
            key: value
            for key, value in asdict(self).items()
            if value is not None and value is not False
        }


@dataclass
class SearchQuery:
    """Поисковый запрос"""
    text: Optional[str] = None
    filters: SearchFilters = field(default_factory=SearchFilters)
    sort: SortField = SortField.RELEVANCE
    sort_order: SortOrder = SortOrder.ASC
    page: int = 1
    page_size: int = 20

    def __post_init__(self):
        if self.text is not None:
            self.text = " ".join(self.text.split()) or None
        if isinstance(self.sort, str):
            try:
                self.sort = SortField(self.sort)
            except ValueError:
                raise InvalidQueryError(f"unknown sort: {self.sort!r}")
        if isinstance(self.sort_order, str):
            try:
                self.sort_order = SortOrder(self.sort_order)
            except ValueError:
                raise InvalidQueryError(f"unknown sort order: {self.sort_order!r}")
        if self.page < 1:
            raise InvalidQueryError("page must be >= 1")
        if self.page_size < 1:
            raise InvalidQueryError("page_size must be > 0")
        if self.offset + self.page_size > MAX_RESULT_WINDOW:
            raise InvalidQueryError(f"page is beyond the first {MAX_RESULT_WINDOW} results")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @classmethod
    def from_params(
        cls,
        text: Optional[str] = None,
        sort: str = "relevance",
        order: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
        **filters,
    ) -> "SearchQuery":
        """Построение запроса из параметров HTTP API"""
        sort_field, alias_order = SORT_ALIASES.get(sort, (sort, None))
        sort_order = order or (alias_order.value if alias_order else SortOrder.ASC.value)
        return cls(
            text=text,
            filters=SearchFilters(**filters),
            sort=sort_field,
            sort_order=sort_order,
            page=page,
            page_size=page_size,
        )


@dataclass
class SearchHit:
    """Найденный документ со скором и подсветкой"""
    id: str
    score: Optional[float]
    source: Dict[str, Any] = field(default_factory=dict)
    highlights: Dict[str, List[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {k: v for k, v in self.source.items() if k != "suggest"}
        data.update(id=self.id, score=self.score, highlights=self.highlights)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchHit":
        data = dict(data)
        return cls(
            id=data.pop("id"),
            score=data.pop("score", None),
            highlights=data.pop("highlights", None) or {},
            source=data,
        )


@dataclass
class SearchResult:
    """Результат поиска"""
    documents: List[SearchHit]
    total: int
    page: int = 1
    page_size: int = 20
    facets: Dict[str, Any] = field(default_factory=dict)
    aggregates: Dict[str, Optional[float]] = field(default_factory=dict)
    took_ms: int = 0
    available: bool = True

    @property
    def pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total / self.page_size)

    @classmethod
    def empty(cls, page: int = 1, page_size: int = 20, available: bool = False) -> "SearchResult":
        """Результат для режима недоступности движка"""
        return cls(documents=[], total=0, page=page, page_size=page_size, available=available)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documents": [hit.to_dict() for hit in self.documents],
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
            "pages": self.pages,
            "facets": self.facets,
            "aggregates": self.aggregates,
            "took_ms": self.took_ms,
            "available": self.available,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchResult":
        return cls(
            documents=[SearchHit.from_dict(d) for d in data.get("documents", [])],
            total=data.get("total", 0),
            page=data.get("page", 1),
            page_size=data.get("page_size", 20),
            facets=data.get("facets") or {},
            aggregates=data.get("aggregates") or {},
            took_ms=data.get("took_ms", 0),
            available=data.get("available", True),
        )


@dataclass
class Suggestion:
    """Подсказка автодополнения"""
    text: str
    score: float = 0.0
    category: Optional[str] = None
    id: Optional[str] = None


@dataclass
class SearchLogEntry:
    """Запись лога поисковых запросов (только добавление)"""
    query: str
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    results_count: int = 0
    clicked_product: Optional[str] = None
    filters: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_source(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "userId": self.user_id,
            "sessionId": self.session_id,
            "resultsCount": self.results_count,
            "clickedProduct": self.clicked_product,
            "filters": self.filters,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class TrendingTerm:
    """Популярный поисковый запрос"""
    term: str
    count: int


@dataclass
class BulkIndexResult:
    """Результат пакетной индексации"""
    indexed: int = 0
    failed_ids: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed_ids

    def add_failure(self, doc_id: str, reason: str) -> None:
        self.failed_ids.append(doc_id)
        self.errors[doc_id] = reason


@dataclass
class HealthStatus:
    """Состояние движка для мониторинга"""
    status: str
    node_count: int = 0
    active_shards: int = 0
    document_count: int = 0
    error: Optional[str] = None
    analytics: Optional[Dict[str, Any]] = None

    DISCONNECTED = "disconnected"
    ERROR = "error"

    @property
    def healthy(self) -> bool:
        return self.status in ("green", "yellow")

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "status": self.status,
            "nodeCount": self.node_count,
            "activeShards": self.active_shards,
            "documentCount": self.document_count,
        }
        if self.error:
            data["error"] = self.error
        if self.analytics is not None:
            data["analytics"] = self.analytics
        return data
