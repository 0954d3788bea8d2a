"""
Cache strategies using Strategy Pattern.
Allows switching between different cache backends (Redis, In-Memory, Null).

The cache is an accelerator only: every failure is reported as a miss or a
False return so a broken cache never fails a redirect.
"""

import json
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from shortlink_app.logging_config import get_logger

logger = get_logger(__name__)


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.
    
    All methods are async because cache operations involve I/O (network for Redis).
    """
    
    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get value from cache.
        
        Returns:
            Cached value or None if not found
        """
        pass
    
    @abstractmethod
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        """
        Set value in cache with TTL (Time To Live) in seconds.
        
        Returns:
            True if successful, False otherwise
        """
        pass
    
    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete key from cache.
        
        Returns:
            True if deleted, False if key didn't exist
        """
        pass
    
    @abstractmethod
    async def clear(self) -> bool:
        """Clear all cache entries."""
        pass
    
    async def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        """Get a JSON object; undecodable entries count as a miss."""
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable cache entry %s", key)
            await self.delete(key)
            return None
        return value if isinstance(value, dict) else None
    
    async def set_json(self, key: str, value: Dict[str, Any], ttl: int = 3600) -> bool:
        """Store a JSON-serializable object."""
        return await self.set(key, json.dumps(value), ttl=ttl)


class RedisCache(CacheStrategy):
    """
    Redis cache implementation.
    
    Shared by every API process, so a delete on one server invalidates the
    redirect mapping for all of them.
    """
    
    def __init__(self, redis_client):
        """
        Args:
            redis_client: Redis client instance (redis.Redis)
        """
        self.redis = redis_client
    
    async def get(self, key: str) -> Optional[str]:
        try:
            value = self.redis.get(key)
            return value.decode('utf-8') if value else None
        except Exception as e:
            logger.warning("Redis get error for %s: %s", key, e)
            return None
    
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        try:
            return bool(self.redis.setex(key, ttl, value))
        except Exception as e:
            logger.warning("Redis set error for %s: %s", key, e)
            return False
    
    async def delete(self, key: str) -> bool:
        try:
            return bool(self.redis.delete(key))
        except Exception as e:
            logger.warning("Redis delete error for %s: %s", key, e)
            return False
    
    async def clear(self) -> bool:
        """Clear all Redis keys (use with caution!)"""
        try:
            self.redis.flushdb()
            return True
        except Exception as e:
            logger.warning("Redis clear error: %s", e)
            return False


class InMemoryCache(CacheStrategy):
    """
    In-memory cache using a Python dict of (value, expires_at) pairs.
    
    Not shared between processes and lost on restart. Good for development,
    tests, and single-process deployments. Expired entries are dropped
    lazily when read.
    """
    
    def __init__(self):
        self._cache: Dict[str, Tuple[str, float]] = {}
    
    async def get(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= time.monotonic():
            self._cache.pop(key, None)
            return None
        return value
    
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        self._cache[key] = (value, time.monotonic() + ttl)
        return True
    
    async def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None
    
    async def clear(self) -> bool:
        self._cache.clear()
        return True


class NullCache(CacheStrategy):
    """
    Null Object Pattern - cache that does nothing.
    
    Every lookup is a miss, so every redirect reads the database.
    """
    
    async def get(self, key: str) -> Optional[str]:
        return None
    
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        return True
    
    async def delete(self, key: str) -> bool:
        return True
    
    async def clear(self) -> bool:
        return True
