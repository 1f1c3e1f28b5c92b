"""
Индексатор товаров каталога
"""
import logging
from typing import List, Dict, Any, Iterable, Optional, Mapping

from elasticsearch import NotFoundError

from ..core.errors import InvalidDocumentError
from ..core.interfaces import IIndexer, ICache
from ..core.models import SearchDocument, BulkIndexResult
from .index_manager import IndexManager, ENGINE_ERRORS, response_body

logger = logging.getLogger(__name__)


class Indexer(IIndexer):
    """
    Синхронизация документов с индексом

    Индекс - кэш каталога с eventual consistency, а не источник истины:
    повторная синхронизация после сбоев остаётся на вызывающей стороне.
    Запись видна почти сразу; refresh=True только для тестов.
    """

    def __init__(
        self,
        manager: IndexManager,
        cache: Optional[ICache] = None,
        attribute_keys: Optional[Iterable[str]] = None,
    ):
        self.manager = manager
        self.cache = cache
        self.attribute_keys = list(
            attribute_keys
            if attribute_keys is not None
            else manager.config.search.attribute_keys
        )

    async def index_one(self, doc: SearchDocument, refresh: bool = False) -> bool:
        """
        Upsert одного документа по ID (без повторных попыток)
        """
        if not await self.manager.ensure_available():
            logger.warning(f"[Indexer] Engine unavailable, document {doc.id} not indexed")
            return False

        try:
            await self.manager.client.index(
                index=self.manager.products_index,
                id=doc.id,
                document=doc.to_source(self.attribute_keys),
                refresh=refresh,
            )
        except ENGINE_ERRORS as e:
            self.manager.handle_error(e, f"index document {doc.id}")
            return False

        await self._invalidate_cache()
        return True

    async def bulk_index(
        self,
        docs: Iterable[SearchDocument],
        refresh: bool = False
    ) -> BulkIndexResult:
        """
        Пакетная индексация за один запрос _bulk

        Ошибки отдельных документов собираются в failed_ids,
        успешно записанные документы остаются в индексе.
        """
        # Один документ на ID, последняя версия побеждает
        unique = list({doc.id: doc for doc in docs}.values())
        result = BulkIndexResult()

        if not unique:
            return result

        if not await self.manager.ensure_available():
            logger.warning(f"[Indexer] Engine unavailable, {len(unique)} documents not indexed")
            for doc in unique:
                result.add_failure(doc.id, "search engine unavailable")
            return result

        operations: List[Dict[str, Any]] = []
        for doc in unique:
            operations.append({"index": {"_index": self.manager.products_index, "_id": doc.id}})
            operations.append(doc.to_source(self.attribute_keys))

        try:
            response = await self.manager.client.bulk(operations=operations, refresh=refresh)
        except ENGINE_ERRORS as e:
            self.manager.handle_error(e, f"bulk index of {len(unique)} documents")
            for doc in unique:
                result.add_failure(doc.id, str(e))
            return result

        for item in response_body(response).get("items", []):
            action = item.get("index") or next(iter(item.values()), {})
            doc_id = action.get("_id")
            error = action.get("error")
            if error:
                reason = error.get("reason", str(error)) if isinstance(error, dict) else str(error)
                result.add_failure(doc_id, reason)
            else:
                result.indexed += 1

        if result.ok:
            logger.info(f"[Indexer] Bulk indexed {result.indexed} documents")
        else:
            logger.warning(
                f"[Indexer] Bulk indexed {result.indexed} documents, "
                f"{len(result.failed_ids)} failed: {result.failed_ids[:10]}"
            )

        if result.indexed:
            await self._invalidate_cache()
        return result

    async def delete_one(self, product_id: str, refresh: bool = False) -> bool:
        """
        Удаление документа из индекса (идемпотентно)
        """
        if not product_id:
            raise InvalidDocumentError("product id is required")

        if not await self.manager.ensure_available():
            logger.warning(f"[Indexer] Engine unavailable, document {product_id} not deleted")
            return False

        try:
            await self.manager.client.delete(
                index=self.manager.products_index,
                id=product_id,
                refresh=refresh,
            )
        except NotFoundError:
            logger.debug(f"[Indexer] Document {product_id} already absent")
        except ENGINE_ERRORS as e:
            self.manager.handle_error(e, f"delete document {product_id}")
            return False

        await self._invalidate_cache()
        return True

    async def index_catalog_record(self, record: Mapping[str, Any], refresh: bool = False) -> bool:
        """Хук каталога: создание/обновление товара"""
        return await self.index_one(SearchDocument.from_catalog(record), refresh=refresh)

    async def bulk_index_records(
        self,
        records: Iterable[Mapping[str, Any]],
        refresh: bool = False
    ) -> BulkIndexResult:
        """Хук каталога: пакетная синхронизация (некорректные записи - ошибка до запроса)"""
        docs = [SearchDocument.from_catalog(record) for record in records]
        return await self.bulk_index(docs, refresh=refresh)

    async def _invalidate_cache(self) -> None:
        if self.cache:
            await self.cache.invalidate()
