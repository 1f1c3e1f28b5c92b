"""
Аналитика поисковых запросов
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Dict, Any

from ..core.config import AnalyticsConfig
from ..core.interfaces import IAnalytics
from ..core.models import SearchLogEntry, TrendingTerm
from ..search.index_manager import IndexManager, ENGINE_ERRORS, response_body
from ..search.query_builder import QueryBuilder, validate_window

logger = logging.getLogger(__name__)


@dataclass
class AnalyticsStats:
    """Внутренняя диагностика логгера"""
    queued: int = 0
    written: int = 0
    failed: int = 0
    dropped: int = 0


class SearchAnalytics(IAnalytics):
    """
    Лог поисковых запросов

    Особенности:
    - log_search не ждёт записи: запись уходит в очередь,
      воркеры пишут в индекс логов в фоне
    - Ошибки записи не влияют на поиск, только на счётчики stats
    - Популярные запросы - агрегация по окну (по умолчанию 24 часа)
    """

    def __init__(
        self,
        manager: IndexManager,
        config: Optional[AnalyticsConfig] = None,
        builder: Optional[QueryBuilder] = None,
    ):
        self.manager = manager
        self.config = config or AnalyticsConfig()
        self.builder = builder or QueryBuilder()

        self.queue: asyncio.Queue = asyncio.Queue(maxsize=self.config.queue_size)
        self.stats = AnalyticsStats()
        self._workers: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._workers)

    async def start(self) -> None:
        """
        Запуск фоновых воркеров
        """
        if self.running:
            return
        self._workers = [
            asyncio.create_task(self._worker(i))
            for i in range(max(1, self.config.workers))
        ]
        logger.info(f"[Analytics] Started {len(self._workers)} worker(s)")

    async def stop(self, drain: bool = True) -> None:
        """
        Остановка воркеров

        Args:
            drain: Дописать уже принятые записи перед остановкой
        """
        if drain and self.running:
            await self.queue.join()

        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

    def log_search(self, entry: SearchLogEntry) -> None:
        """
        Поставить запись в очередь (fire-and-forget)
        """
        try:
            self.queue.put_nowait(entry)
        except asyncio.QueueFull:
            self.stats.dropped += 1
            logger.warning(f"[Analytics] Queue full, search log dropped: '{entry.query}'")
            return
        self.stats.queued += 1

    def log_click(
        self,
        query: str,
        product_id: str,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> None:
        """Записать клик по товару из выдачи"""
        self.log_search(SearchLogEntry(
            query=query,
            user_id=user_id,
            session_id=session_id,
            clicked_product=product_id,
            results_count=1,
        ))

    async def get_trending_searches(
        self,
        limit: int = 10,
        window: str = "24h"
    ) -> List[TrendingTerm]:
        """
        Популярные запросы за окно
        """
        return await self._aggregate_queries(limit, window, zero_results=False)

    async def get_zero_result_queries(
        self,
        limit: int = 10,
        window: str = "24h"
    ) -> List[TrendingTerm]:
        """
        Запросы без результатов за окно
        """
        return await self._aggregate_queries(limit, window, zero_results=True)

    # ==================== Приватные методы ====================

    async def _aggregate_queries(
        self,
        limit: int,
        window: str,
        zero_results: bool
    ) -> List[TrendingTerm]:
        validate_window(window)
        if limit < 1:
            return []
        if not await self.manager.ensure_available():
            return []

        body = self.builder.build_trending_body(limit, window, zero_results=zero_results)
        try:
            response = await self.manager.client.search(
                index=self.manager.search_logs_index,
                **body
            )
        except ENGINE_ERRORS as e:
            self.manager.handle_error(e, "trending searches")
            return []

        aggs = response_body(response).get("aggregations") or {}
        buckets = (aggs.get("trending") or {}).get("buckets", [])
        return [TrendingTerm(term=b["key"], count=b["doc_count"]) for b in buckets]

    async def _worker(self, worker_id: int) -> None:
        """
        Воркер записи логов
        """
        while True:
            entry = await self.queue.get()
            try:
                await self._write(entry)
            except Exception:
                self.stats.failed += 1
                logger.exception(f"[Analytics] Worker {worker_id} failed to write search log")
            finally:
                self.queue.task_done()

    async def _write(self, entry: SearchLogEntry) -> None:
        if not await self.manager.ensure_available():
            self.stats.failed += 1
            logger.debug(f"[Analytics] Engine unavailable, search log skipped: '{entry.query}'")
            return

        try:
            await self.manager.client.index(
                index=self.manager.search_logs_index,
                document=entry.to_source(),
            )
        except ENGINE_ERRORS as e:
            self.stats.failed += 1
            self.manager.handle_error(e, "write search log")
            return

        self.stats.written += 1

    def diagnostics(self) -> Dict[str, Any]:
        """Счётчики для мониторинга"""
        return {
            "queued": self.stats.queued,
            "written": self.stats.written,
            "failed": self.stats.failed,
            "dropped": self.stats.dropped,
            "pending": self.queue.qsize(),
            "running": self.running,
        }
