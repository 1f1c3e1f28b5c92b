"""
Состояние поискового движка для мониторинга
"""
import logging

from ..core.models import HealthStatus
from .index_manager import IndexManager, ENGINE_ERRORS, CONNECTIVITY_ERRORS, response_body

logger = logging.getLogger(__name__)


class HealthReporter:
    """
    Health check для операционных инструментов (не для горячего пути поиска)

    Успешная проверка в режиме недоступности возвращает сервис в работу.
    """

    def __init__(self, manager: IndexManager):
        self.manager = manager

    async def health_check(self) -> HealthStatus:
        client = self.manager.client
        if client is None:
            return HealthStatus(status=HealthStatus.DISCONNECTED)

        try:
            health = response_body(await client.cluster.health())
        except CONNECTIVITY_ERRORS as e:
            self.manager.handle_error(e, "health check")
            return HealthStatus(status=HealthStatus.DISCONNECTED, error=str(e))
        except ENGINE_ERRORS as e:
            logger.warning(f"[Health] Cluster health failed: {e}")
            return HealthStatus(status=HealthStatus.ERROR, error=str(e))

        status = HealthStatus(
            status=health.get("status", HealthStatus.ERROR),
            node_count=health.get("number_of_nodes", 0),
            active_shards=health.get("active_shards", 0),
        )

        if not await self.manager.recover():
            status.error = "search disabled"
            return status

        try:
            count = response_body(await client.count(index=self.manager.products_index))
            status.document_count = int(count.get("count", 0))
        except ENGINE_ERRORS as e:
            logger.warning(f"[Health] Document count failed: {e}")
            status.error = str(e)

        return status
