"""
Конфигурация сервиса поиска по каталогу
"""
from dataclasses import dataclass, field
from typing import Optional, List
import logging
import os


DEFAULT_ATTRIBUTE_KEYS = [
    "color",
    "size",
    "material",
    "gender",
    "model",
    "warranty",
    "weight",
    "dimensions",
]


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class ElasticsearchConfig:
    """Настройки подключения к Elasticsearch"""
    url: str = "http://localhost:9200"
    username: Optional[str] = None
    password: Optional[str] = None
    verify_certs: bool = False

    # Таймаут одного запроса (секунды)
    request_timeout: float = 5.0
    max_retries: int = 1

    # Пауза перед повторной проверкой движка после сбоя (секунды)
    recovery_backoff: float = 5.0

    # Индексы
    index_prefix: str = "catalog"
    number_of_shards: int = 1
    number_of_replicas: int = 0

    @property
    def products_index(self) -> str:
        return f"{self.index_prefix}_products"

    @property
    def search_logs_index(self) -> str:
        return f"{self.index_prefix}_search_logs"


@dataclass
class RedisConfig:
    """Настройки Redis (кэш результатов поиска)"""
    url: Optional[str] = None

    # TTL для кэша (секунды)
    search_cache_ttl: int = 60

    @property
    def enabled(self) -> bool:
        return bool(self.url)


@dataclass
class SearchConfig:
    """Настройки поиска"""
    # Результаты
    default_page_size: int = 20
    max_page_size: int = 100

    # Подсказки
    suggestions_limit: int = 10
    max_suggestions_limit: int = 50

    # Похожие товары
    similar_limit: int = 10

    # Фасеты
    facet_size: int = 20

    # Разрешённые ключи атрибутов товара
    attribute_keys: List[str] = field(default_factory=lambda: list(DEFAULT_ATTRIBUTE_KEYS))


@dataclass
class AnalyticsConfig:
    """Настройки аналитики поисковых запросов"""
    queue_size: int = 10_000
    workers: int = 1

    # Окно для популярных запросов
    trending_window: str = "24h"
    trending_limit: int = 10


@dataclass
class ApiConfig:
    """Настройки API"""
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS
    cors_origins: list = field(default_factory=lambda: ["*"])


@dataclass
class Config:
    """Главная конфигурация"""
    env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    elasticsearch: ElasticsearchConfig = field(default_factory=ElasticsearchConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    api: ApiConfig = field(default_factory=ApiConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Загрузить конфигурацию из переменных окружения"""
        return cls(
            env=os.getenv("ENV", "development"),
            debug=_env_bool("DEBUG", "true"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),

            elasticsearch=ElasticsearchConfig(
                url=os.getenv("ELASTICSEARCH_URL", "http://localhost:9200"),
                username=os.getenv("ELASTICSEARCH_USERNAME"),
                password=os.getenv("ELASTICSEARCH_PASSWORD"),
                verify_certs=_env_bool("ELASTICSEARCH_VERIFY_CERTS", "false"),
                request_timeout=float(os.getenv("ELASTICSEARCH_TIMEOUT", "5")),
                max_retries=int(os.getenv("ELASTICSEARCH_MAX_RETRIES", "1")),
                recovery_backoff=float(os.getenv("ELASTICSEARCH_RECOVERY_BACKOFF", "5")),
                index_prefix=os.getenv("SEARCH_INDEX_PREFIX", "catalog"),
                number_of_shards=int(os.getenv("SEARCH_SHARDS", "1")),
                number_of_replicas=int(os.getenv("SEARCH_REPLICAS", "0")),
            ),

            redis=RedisConfig(
                url=os.getenv("REDIS_URL") or None,
                search_cache_ttl=int(os.getenv("SEARCH_CACHE_TTL", "60")),
            ),

            search=SearchConfig(
                attribute_keys=_env_list("ATTRIBUTE_KEYS", DEFAULT_ATTRIBUTE_KEYS),
            ),

            analytics=AnalyticsConfig(
                queue_size=int(os.getenv("ANALYTICS_QUEUE_SIZE", "10000")),
                workers=int(os.getenv("ANALYTICS_WORKERS", "1")),
            ),

            api=ApiConfig(
                host=os.getenv("API_HOST", "0.0.0.0"),
                port=int(os.getenv("API_PORT", "8000")),
            ),
        )


def configure_logging(level: str = "INFO") -> None:
    """Базовая настройка логирования для процесса"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
