"""
Управление подключением к Elasticsearch и жизненным циклом индексов
"""
import logging
import time
from typing import Optional, Dict, Any

from elasticsearch import (
    AsyncElasticsearch,
    ApiError,
    TransportError,
    BadRequestError,
    ConnectionError as EngineConnectionError,
    ConnectionTimeout,
)

from ..core.config import Config
from ..core.errors import SchemaError, ConnectivityError
from .schema import products_index_body, search_logs_index_body

logger = logging.getLogger(__name__)


# Любая ошибка движка: HTTP-ответ с ошибкой или сбой транспорта
ENGINE_ERRORS = (ApiError, TransportError)

# Ошибки, переводящие сервис в режим недоступности
CONNECTIVITY_ERRORS = (EngineConnectionError, ConnectionTimeout)


def response_body(response) -> Dict[str, Any]:
    """Тело ответа клиента (ObjectApiResponse или dict)"""
    return getattr(response, "body", response)


def error_type(exc: ApiError) -> str:
    """Тип ошибки Elasticsearch из тела ответа"""
    body = exc.body
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("type", "")
    return str(exc.message)


class IndexManager:
    """
    Владелец клиента Elasticsearch

    - Создаёт одно подключение на экземпляр сервиса (пул внутри клиента)
    - Проверяет и создаёт индексы при старте (идемпотентно)
    - Хранит флаг доступности: при сбое подключения сервис работает
      в режиме недоступности вместо падения процесса
    """

    def __init__(self, config: Config, client: Optional[AsyncElasticsearch] = None):
        self.config = config
        self.es_config = config.elasticsearch
        self.client = client
        self._owns_client = client is None
        self._available = False
        self.schema_ready = False
        self._schema_failed = False
        self._unavailable_since: Optional[float] = None

    @property
    def available(self) -> bool:
        return self.client is not None and self._available

    @property
    def products_index(self) -> str:
        return self.es_config.products_index

    @property
    def search_logs_index(self) -> str:
        return self.es_config.search_logs_index

    def _build_client(self) -> AsyncElasticsearch:
        kwargs: Dict[str, Any] = {
            "request_timeout": self.es_config.request_timeout,
            "max_retries": self.es_config.max_retries,
            "retry_on_timeout": False,
        }
        if self.es_config.url.startswith("https"):
            kwargs["verify_certs"] = self.es_config.verify_certs
        if self.es_config.username and self.es_config.password:
            kwargs["basic_auth"] = (self.es_config.username, self.es_config.password)
        return AsyncElasticsearch(self.es_config.url, **kwargs)

    async def connect(self) -> bool:
        """
        Подключение к движку

        При ошибке сервис переходит в режим недоступности,
        исключение наружу не пробрасывается.
        """
        if self.client is None:
            self.client = self._build_client()

        try:
            health = response_body(await self.client.cluster.health())
        except ENGINE_ERRORS as e:
            logger.error(f"[IndexManager] Elasticsearch connection failed: {e}")
            self._mark_unavailable()
            return False

        self._available = True
        self._unavailable_since = None
        logger.info(f"[IndexManager] Elasticsearch connected: status={health.get('status')}")
        return True

    async def ensure_schema(self) -> bool:
        """
        Проверить индексы и создать отсутствующие

        Конфликт маппинга логируется, поиск отключается,
        процесс продолжает работу.
        """
        if not self.available:
            logger.warning("[IndexManager] Engine unavailable, schema check skipped")
            return False

        indices = {
            self.products_index: products_index_body(
                self.es_config, self.config.search.attribute_keys
            ),
            self.search_logs_index: search_logs_index_body(self.es_config),
        }

        for name, body in indices.items():
            try:
                await self._ensure_index(name, body)
            except SchemaError as e:
                logger.error(f"[IndexManager] {e}; search disabled")
                self._available = False
                self._schema_failed = True
                return False
            except ENGINE_ERRORS as e:
                self.handle_error(e, f"ensure index '{name}'")
                return False

        self.schema_ready = True
        return True

    async def _ensure_index(self, name: str, body: Dict[str, Any]) -> bool:
        """Создать индекс, если его нет. True - индекс создан"""
        if await self.client.indices.exists(index=name):
            return False

        try:
            await self.client.indices.create(
                index=name,
                settings=body["settings"],
                mappings=body["mappings"],
            )
        except BadRequestError as e:
            # Индекс создан параллельно другим воркером
            if error_type(e) == "resource_already_exists_exception":
                return False
            raise SchemaError(name, str(e))

        logger.info(f"[IndexManager] Index '{name}' created")
        return True

    def handle_error(self, exc: Exception, operation: str) -> None:
        """
        Обработка ошибки движка на границе компонента

        Сбой подключения или таймаут переводят в режим недоступности.
        """
        if isinstance(exc, CONNECTIVITY_ERRORS):
            if self._available:
                logger.error(
                    f"[IndexManager] {operation}: engine unreachable ({exc}), "
                    f"switching to unavailable mode"
                )
            self._mark_unavailable()
        else:
            logger.error(f"[IndexManager] {operation} failed: {exc}")

    async def recover(self) -> bool:
        """
        Выход из режима недоступности после успешной проверки движка

        После конфликта маппинга поиск остаётся отключённым до перезапуска.
        """
        if self._available or self.client is None or self._schema_failed:
            return self.available

        logger.info("[IndexManager] Engine reachable again, leaving unavailable mode")
        self._available = True
        self._unavailable_since = None
        if not self.schema_ready:
            return await self.ensure_schema()
        return True

    async def ensure_available(self) -> bool:
        """
        Доступность движка для операции

        В режиме недоступности не чаще раза в recovery_backoff секунд
        проверяет кластер и при ответе возвращает сервис в работу.
        """
        if self.available:
            return True
        if self.client is None or self._schema_failed or self._unavailable_since is None:
            return False
        if time.monotonic() - self._unavailable_since < self.es_config.recovery_backoff:
            return False

        # Параллельные вызовы ждут следующей паузы
        self._unavailable_since = time.monotonic()
        try:
            await self.client.cluster.health()
        except ENGINE_ERRORS as e:
            logger.debug(f"[IndexManager] Engine still unavailable: {e}")
            return False

        return await self.recover()

    def _mark_unavailable(self) -> None:
        self._available = False
        self._unavailable_since = time.monotonic()

    async def refresh(self) -> None:
        """Принудительный refresh индексов (только для тестов)"""
        if not self.available:
            raise ConnectivityError("search engine unavailable")
        await self.client.indices.refresh(
            index=[self.products_index, self.search_logs_index]
        )

    async def close(self) -> None:
        """Закрытие клиента"""
        if self.client is not None and self._owns_client:
            await self.client.close()
        self._available = False
        self._unavailable_since = None
