"""Redis-backed ephemeral key/value store."""

from typing import Any, Mapping

from shared.utils.logging import get_logger

logger = get_logger(__name__)


def _decode(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode()
    return str(value)


class RedisStore:
    """Thin async wrapper over hash-with-TTL operations.

    Errors from Redis are not caught here; callers decide whether a
    failure is fatal.
    """

    def __init__(self, redis_client):
        """Initialize store.

        Args:
            redis_client: ``redis.asyncio.Redis`` instance
        """
        self.redis = redis_client

    async def hmset(self, key: str, mapping: Mapping[str, Any], ttl: int) -> None:
        """Write all hash fields and the TTL in a single MULTI/EXEC.

        Args:
            key: Hash key
            mapping: Field values (stored as strings)
            ttl: Expiration in seconds
        """
        values = {field: str(value) for field, value in mapping.items()}
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(key, mapping=values)
            pipe.expire(key, ttl)
            await pipe.execute()

        logger.debug("redis_hash_written", key=key, ttl=ttl)

    async def hmget(self, key: str, fields: list[str]) -> list[str | None]:
        """Read hash fields; missing fields (or an expired key) yield None."""
        values = await self.redis.hmget(key, fields)
        return [_decode(value) for value in values]

    async def scan(self, pattern: str, limit: int) -> list[str]:
        """Collect up to ``limit`` keys matching a glob pattern.

        Args:
            pattern: Glob-style pattern (e.g. ``prefix:user:*``)
            limit: Stop after this many keys

        Returns:
            Distinct matching keys, at most ``limit`` of them
        """
        keys: list[str] = []
        if limit <= 0:
            return keys

        # SCAN may return a key more than once while the keyspace rehashes
        seen: set[str] = set()
        async for key in self.redis.scan_iter(match=pattern, count=max(limit, 100)):
            key = _decode(key)
            if key in seen:
                continue
            seen.add(key)
            keys.append(key)
            if len(keys) >= limit:
                break
        return keys

    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""
        if not keys:
            return 0
        return await self.redis.delete(*keys)
