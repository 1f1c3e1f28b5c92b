"""
Кэш результатов поиска в Redis
"""
import json
import logging
from typing import Optional

from redis.exceptions import RedisError

from ..core.interfaces import ICache
from ..core.models import SearchResult

logger = logging.getLogger(__name__)


# Сколько секунд после записи в индекс результаты не кэшируются
# (refresh_interval индекса по умолчанию 1s)
WRITE_SETTLE_SECONDS = 2


class SearchCache(ICache):
    """
    Кэш результатов поиска

    Ключи: cache:{namespace}:search:{generation}:{md5}. Запись в индекс
    увеличивает поколение, старые ключи истекают по TTL.
    Ошибки Redis не влияют на поиск.
    """

    def __init__(self, redis_client, namespace: str, ttl: int = 60):
        self.redis = redis_client
        self.namespace = namespace
        self.ttl = ttl

    @property
    def generation_key(self) -> str:
        return f"cache:{self.namespace}:generation"

    @property
    def settle_key(self) -> str:
        return f"cache:{self.namespace}:settling"

    def _key(self, generation, query_hash: str) -> str:
        return f"cache:{self.namespace}:search:{generation or 0}:{query_hash}"

    async def get_search_result(self, query_hash: str) -> Optional[SearchResult]:
        try:
            generation = await self.redis.get(self.generation_key)
            data = await self.redis.get(self._key(generation, query_hash))
        except RedisError as e:
            logger.warning(f"[Cache] Read failed: {e}")
            return None

        if not data:
            return None
        return SearchResult.from_dict(json.loads(data))

    async def set_search_result(
        self,
        query_hash: str,
        result: SearchResult,
        ttl: Optional[int] = None
    ) -> None:
        # Деградированные результаты не кэшируем
        if not result.available:
            return
        try:
            generation, settling = await self.redis.mget(self.generation_key, self.settle_key)
            # Индекс ещё не показывает последнюю запись
            if settling:
                return
            await self.redis.set(
                self._key(generation, query_hash),
                json.dumps(result.to_dict(), ensure_ascii=False, default=str),
                ex=ttl or self.ttl,
            )
        except RedisError as e:
            logger.warning(f"[Cache] Write failed: {e}")

    async def invalidate(self) -> None:
        pipe = self.redis.pipeline()
        pipe.set(self.settle_key, 1, ex=WRITE_SETTLE_SECONDS)
        pipe.incr(self.generation_key)
        try:
            await pipe.execute()
        except RedisError as e:
            logger.warning(f"[Cache] Invalidation failed: {e}")

    async def close(self) -> None:
        await self.redis.close()
