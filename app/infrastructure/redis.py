"""Redis client and token storage.

Provides a pooled Redis connection and a ``TokenStore`` used for revoked
access tokens and password reset tokens. When Redis is unreachable the store
keeps its keys in process memory so development and tests run without it.
"""
import json
import math
import threading
import time
import redis
from typing import Any, Dict, Optional, Tuple
from datetime import timedelta

from app.core.logging import get_logger
from app.core.config import Settings, settings

logger = get_logger(__name__)

# Seconds to wait before retrying an unreachable server
RETRY_AFTER_SECONDS = 30.0

_client: Optional[redis.Redis] = None
_unavailable_until = 0.0


def get_redis_client(config: Optional[Settings] = None) -> Optional[redis.Redis]:
    """Return the shared Redis client, or None while the server is unreachable.

    A failed connection is remembered for ``RETRY_AFTER_SECONDS`` so a missing
    server costs one connect timeout instead of one per token lookup.
    """
    global _client, _unavailable_until

    if _client is not None:
        return _client
    if time.monotonic() < _unavailable_until:
        return None

    config = config or settings
    pool = redis.ConnectionPool(
        host=config.redis_host,
        port=config.redis_port,
        db=config.redis_db,
        password=config.redis_password,
        decode_responses=True,
        max_connections=50,
        socket_connect_timeout=2,
        socket_timeout=2,
    )
    client = redis.Redis(connection_pool=pool)

    try:
        client.ping()
    except redis.RedisError as e:
        _unavailable_until = time.monotonic() + RETRY_AFTER_SECONDS
        pool.disconnect()
        logger.warning(
            f"Redis unavailable at {config.redis_host}:{config.redis_port}, keeping tokens in memory: {e}"
        )
        return None

    logger.info(f"Connected to Redis at {config.redis_host}:{config.redis_port}/{config.redis_db}")
    _client = client
    return _client


def close_redis_client() -> None:
    """Release pooled connections and forget a remembered failure."""
    global _client, _unavailable_until

    if _client is not None:
        _client.close()
        _client.connection_pool.disconnect()
    _client = None
    _unavailable_until = 0.0


class TokenStore:
    """Key/value store with TTL for short-lived token state.

    Every write is kept in process memory as well as in Redis, and reads that
    miss or fail in Redis fall back to memory. A revocation recorded while the
    server was down therefore still holds once it comes back.

    Example:
        >>> store = TokenStore(key_prefix="revoked:")
        >>> store.set("3f2a...", {"user_id": 1}, ttl=timedelta(hours=24))
        >>> store.get("3f2a...")
        {'user_id': 1}
    """

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        key_prefix: str = "token:",
    ):
        """Initialize token store.

        Args:
            redis_client: Redis client to use; ``None`` resolves the shared
                client on each operation
            key_prefix: Prefix for Redis keys
        """
        self._redis_client = redis_client
        self.key_prefix = key_prefix
        self._memory: Dict[str, Tuple[float, str]] = {}
        self._lock = threading.Lock()

        logger.info(f"TokenStore '{key_prefix}' initialized")

    @property
    def redis(self) -> Optional[redis.Redis]:
        """Current Redis client, or None while the server is unreachable."""
        if self._redis_client is not None:
            return self._redis_client
        return get_redis_client()

    def _make_key(self, token: str) -> str:
        """Create full Redis key with prefix."""
        return f"{self.key_prefix}{token}"

    def _remember(self, key: str, ttl_seconds: int, serialized: str) -> None:
        now = time.monotonic()
        with self._lock:
            expired = [k for k, (expires_at, _) in self._memory.items() if expires_at <= now]
            for k in expired:
                del self._memory[k]
            self._memory[key] = (now + ttl_seconds, serialized)

    def _recall(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._memory.get(key)
            if entry is None:
                return None
            expires_at, serialized = entry
            if expires_at <= time.monotonic():
                del self._memory[key]
                return None
        return serialized

    def set(self, token: str, data: Dict[str, Any], ttl: timedelta) -> bool:
        """Store token data with TTL, rounded up to whole seconds.

        Returns:
            False if Redis is reachable but the write failed (the data is
            then held in process memory only), True otherwise
        """
        key = self._make_key(token)
        serialized = json.dumps(data, default=str)
        ttl_seconds = math.ceil(ttl.total_seconds())
        if ttl_seconds <= 0:
            return True

        self._remember(key, ttl_seconds, serialized)

        client = self.redis
        if client is None:
            return True
        try:
            client.setex(key, ttl_seconds, serialized)
        except redis.RedisError as e:
            logger.error(f"Error saving token {self.key_prefix}: {e}", exc_info=True)
            return False
        return True

    def get(self, token: str) -> Optional[Dict[str, Any]]:
        """Return token data, or None if missing or expired."""
        key = self._make_key(token)

        client = self.redis
        if client is not None:
            try:
                data = client.get(key)
            except redis.RedisError as e:
                logger.error(f"Error reading token {self.key_prefix}, using memory: {e}", exc_info=True)
            else:
                if data:
                    return json.loads(data)

        serialized = self._recall(key)
        return json.loads(serialized) if serialized else None

    def exists(self, token: str) -> bool:
        return self.get(token) is not None

    def delete(self, token: str) -> bool:
        """Delete token data.

        Returns:
            True if deleted, False if not found
        """
        key = self._make_key(token)
        with self._lock:
            deleted = self._memory.pop(key, None) is not None

        client = self.redis
        if client is not None:
            try:
                deleted = bool(client.delete(key)) or deleted
            except redis.RedisError as e:
                logger.error(f"Error deleting token {self.key_prefix}: {e}", exc_info=True)
        return deleted

    def pop(self, token: str) -> Optional[Dict[str, Any]]:
        """Return and delete token data (single use)."""
        data = self.get(token)
        if data is not None:
            self.delete(token)
        return data

    def clear(self) -> None:
        """Drop every key under this store's prefix."""
        with self._lock:
            self._memory.clear()

        client = self.redis
        if client is None:
            return
        try:
            for key in client.scan_iter(match=f"{self.key_prefix}*"):
                client.delete(key)
        except redis.RedisError as e:
            logger.error(f"Error clearing {self.key_prefix}: {e}", exc_info=True)


_stores: Dict[str, TokenStore] = {}
_stores_lock = threading.Lock()


def get_token_store(key_prefix: str) -> TokenStore:
    """Return the shared store for a key prefix, creating it on first use.

    Shared stores resolve the Redis client per operation, so they pick the
    server up again once the retry window has passed.
    """
    with _stores_lock:
        store = _stores.get(key_prefix)
        if store is None:
            store = TokenStore(key_prefix=key_prefix)
            _stores[key_prefix] = store
        return store


def reset_token_stores() -> None:
    """Forget shared stores and their memory (used by tests)."""
    with _stores_lock:
        _stores.clear()
