"""
Redis-based result cache for PolicyLens analyses.

The cache is a pure optimization: every read error is reported as a miss and
every write error is logged and dropped, so the store being down never fails
a request. Every store operation is bounded by ``op_timeout``, so a stalled
store reads as a miss or a dropped write rather than a hang. One instance is
built per process (see ``core.app``) and injected into the orchestrator.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import redis.asyncio as redis
import structlog

from policylens.core.config import Settings

logger = structlog.get_logger(__name__)

KEY_PREFIX = "policylens:analysis"
MAX_RAW_KEY_LENGTH = 200


class ResultCache:
    """Get/set-with-TTL over JSON values, tolerant of store failures."""

    def __init__(
        self,
        url: str,
        *,
        token: Optional[str] = None,
        default_ttl: int = 24 * 3600,
        max_connections: int = 20,
        op_timeout: float = 2.0,
    ):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.url = url
        self.token = token
        self.default_ttl = default_ttl
        self.op_timeout = op_timeout
        self.max_connections = max_connections
        self.redis_pool: Optional[redis.ConnectionPool] = None
        self.hit_count = 0
        self.miss_count = 0
        self.error_count = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["ResultCache"]:
        """Build the cache, or None when caching is disabled or unconfigured."""
        if not settings.cache_configured:
            return None
        return cls(
            settings.kv_url or "",
            token=settings.kv_token,
            default_ttl=settings.cache_ttl_sec,
            op_timeout=settings.cache_timeout_sec,
        )

    def _create_pool(self) -> redis.ConnectionPool:
        kwargs: Dict[str, Any] = {
            "max_connections": self.max_connections,
            "decode_responses": True,
            "socket_timeout": self.op_timeout,
            "socket_connect_timeout": self.op_timeout,
        }
        if self.token:
            kwargs["password"] = self.token
        return redis.ConnectionPool.from_url(self.url, **kwargs)

    async def initialize(self) -> bool:
        """Create the connection pool and check connectivity."""
        if self.redis_pool is None:
            self.redis_pool = self._create_pool()
        ok = await self.ping()
        if ok:
            logger.info("Result cache connection established")
        else:
            logger.warning("Result cache unreachable; requests will run uncached")
        return ok

    async def close(self) -> None:
        if self.redis_pool is not None:
            await self.redis_pool.disconnect()
            self.redis_pool = None

    @asynccontextmanager
    async def get_client(self):
        """Context manager for a Redis client bound to the shared pool."""
        if self.redis_pool is None:
            self.redis_pool = self._create_pool()
        client = redis.Redis(connection_pool=self.redis_pool)
        try:
            yield client
        finally:
            await client.aclose()

    async def ping(self) -> bool:
        try:
            async with self.get_client() as client:
                await asyncio.wait_for(client.ping(), timeout=self.op_timeout)
            return True
        except Exception as e:
            logger.warning("Result cache ping failed", error=str(e), error_type=type(e).__name__)
            return False

    @staticmethod
    def storage_key(key: str) -> str:
        """Namespace ``key`` and hash it when it is too long to store raw."""
        if len(key) > MAX_RAW_KEY_LENGTH:
            digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
            return f"{KEY_PREFIX}:hash:{digest}"
        return f"{KEY_PREFIX}:{key}"

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the cached entry for ``key``; None on miss or any error."""
        try:
            async with self.get_client() as client:
                cached_data = await asyncio.wait_for(
                    client.get(self.storage_key(key)), timeout=self.op_timeout
                )
        except Exception as e:
            self.error_count += 1
            logger.error("Cache get error", error=str(e), error_type=type(e).__name__)
            return None

        if cached_data is None:
            self.miss_count += 1
            logger.info("Cache MISS")
            return None

        try:
            entry = json.loads(cached_data)
        except (TypeError, ValueError) as e:
            self.error_count += 1
            logger.warning("Discarding undecodable cache entry", error=str(e))
            return None
        if not isinstance(entry, dict):
            self.error_count += 1
            logger.warning("Discarding non-object cache entry")
            return None

        self.hit_count += 1
        logger.info("Cache HIT")
        return entry

    async def set(self, key: str, entry: Dict[str, Any], ttl: Optional[int] = None) -> bool:
        """Best-effort write; returns False instead of raising on failure."""
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            logger.warning("Refusing cache write with non-positive TTL", ttl=ttl)
            return False
        try:
            payload = json.dumps(entry, ensure_ascii=False)
            async with self.get_client() as client:
                await asyncio.wait_for(
                    client.setex(self.storage_key(key), ttl, payload), timeout=self.op_timeout
                )
            logger.info("Cached analysis result", ttl=ttl)
            return True
        except Exception as e:
            self.error_count += 1
            logger.error("Cache set error", error=str(e), error_type=type(e).__name__)
            return False

    def stats(self) -> Dict[str, Any]:
        total = self.hit_count + self.miss_count
        hit_rate = (self.hit_count / total * 100) if total else 0.0
        return {
            "hit_count": self.hit_count,
            "miss_count": self.miss_count,
            "error_count": self.error_count,
            "hit_rate_percent": round(hit_rate, 2),
        }
