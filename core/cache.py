import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from aiocache import SimpleMemoryCache
from aiocache.base import BaseCache
from aiocache.serializers import JsonSerializer

logger = logging.getLogger(__name__)

class CacheStore:
    """Key-value store shared by the station and prediction caches.

    Records are stored as plain JSON documents. Entries never expire in the
    backend: every record carries its own ``last_updated_millis`` and the
    caller decides on read whether it is still valid.
    """

    def __init__(self, backend: BaseCache):
        self.backend = backend

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        return await self.backend.get(key)

    async def multi_get(self, keys: List[str]) -> List[Optional[Dict[str, Any]]]:
        if not keys:
            return []
        return await self.backend.multi_get(keys)

    async def set(self, key: str, value: Dict[str, Any]) -> None:
        await self.backend.set(key, value)

    async def multi_set(self, pairs: Iterable[Tuple[str, Dict[str, Any]]]) -> None:
        pairs = list(pairs)
        if pairs:
            await self.backend.multi_set(pairs)

    async def close(self) -> None:
        await self.backend.close()

def build_cache_store(cache_settings: Dict[str, Any]) -> CacheStore:
    """Build the cache store described by the ``cache`` settings block."""
    backend = cache_settings.get("backend", "memory")
    if backend != "memory":
        raise ValueError(f"Unsupported cache backend: {backend}")

    logger.info(f"Using in-memory cache with prefix '{cache_settings.get('prefix', '')}'")
    return CacheStore(
        SimpleMemoryCache(
            serializer=JsonSerializer(),
            namespace=cache_settings.get("prefix", "")
        )
    )
