"""
题目池缓存

缓存是可选的加速层：Redis 不可用时所有操作退化为未命中，
引擎的正确性不依赖缓存。显式失效是主要的一致性手段，TTL 只是兜底。
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from redis import Redis
from redis.exceptions import RedisError

from exam_engine.core.config import EngineConfig

logger = logging.getLogger(__name__)

POOL_KEY_PREFIX = "topic_questions"
TOPIC_METADATA_KEY_PREFIX = "topic:metadata"


class CacheBackend(ABC):
    """缓存后端抽象基类"""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """
        读取缓存

        Args:
            key: 缓存键

        Returns:
            反序列化后的值，未命中返回 None
        """
        pass

    @abstractmethod
    def set_with_ttl(self, key: str, value: Any, ttl: int) -> bool:
        """
        写入缓存并设置过期时间

        Args:
            key: 缓存键
            value: 可 JSON 序列化的值
            ttl: 过期时间（秒）

        Returns:
            是否写入成功
        """
        pass

    @abstractmethod
    def invalidate(self, pattern: str) -> int:
        """
        按通配符删除缓存

        Args:
            pattern: glob 风格的键模式

        Returns:
            删除的键数量
        """
        pass

    def is_available(self) -> bool:
        """后端是否可用"""
        return False


class NullCacheBackend(CacheBackend):
    """空缓存：永远未命中"""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set_with_ttl(self, key: str, value: Any, ttl: int) -> bool:
        return False

    def invalidate(self, pattern: str) -> int:
        return 0


class RedisCacheBackend(CacheBackend):
    """Redis 缓存后端，值以 JSON 存储"""

    def __init__(self, client: Redis):
        self._client = client

    @classmethod
    def from_url(cls, redis_url: str) -> "RedisCacheBackend":
        return cls(Redis.from_url(redis_url))

    def get(self, key: str) -> Optional[Any]:
        try:
            data = self._client.get(key)
        except RedisError as e:
            logger.warning(f"读取缓存失败，按未命中处理: key={key}, error={e}")
            return None

        if data is None:
            return None

        try:
            return json.loads(data)
        except ValueError as e:
            logger.warning(f"缓存内容无法解析，按未命中处理: key={key}, error={e}")
            return None

    def set_with_ttl(self, key: str, value: Any, ttl: int) -> bool:
        try:
            self._client.set(key, json.dumps(value), ex=ttl)
            return True
        except RedisError as e:
            logger.warning(f"写入缓存失败: key={key}, error={e}")
            return False

    def invalidate(self, pattern: str) -> int:
        try:
            keys = list(self._client.scan_iter(match=pattern))
            if not keys:
                return 0
            return int(self._client.delete(*keys))
        except RedisError as e:
            logger.warning(f"缓存失效失败: pattern={pattern}, error={e}")
            return 0

    def is_available(self) -> bool:
        try:
            return bool(self._client.ping())
        except RedisError:
            return False


class PoolCache:
    """
    题目池与专题元数据缓存

    键格式：
        题目池: topic_questions:{topic_id}:{size|all}
        专题元数据: topic:metadata:{topic_id}
    """

    def __init__(
        self,
        backend: CacheBackend,
        pool_ttl: int = 86400,
        metadata_ttl: int = 21600
    ):
        self.backend = backend
        self.pool_ttl = pool_ttl
        self.metadata_ttl = metadata_ttl

    @staticmethod
    def pool_key(topic_id: str, size: Optional[int]) -> str:
        return f"{POOL_KEY_PREFIX}:{topic_id}:{size or 'all'}"

    @staticmethod
    def metadata_key(topic_id: str) -> str:
        return f"{TOPIC_METADATA_KEY_PREFIX}:{topic_id}"

    def get_pool(self, topic_id: str, size: Optional[int]) -> Optional[List[Dict[str, Any]]]:
        pool = self.backend.get(self.pool_key(topic_id, size))
        if pool is not None and not isinstance(pool, list):
            logger.warning(f"题目池缓存格式异常，忽略: topic={topic_id}")
            return None
        return pool

    def set_pool(self, topic_id: str, size: Optional[int], pool: List[Dict[str, Any]]) -> bool:
        return self.backend.set_with_ttl(self.pool_key(topic_id, size), pool, self.pool_ttl)

    def get_topic_metadata(self, topic_id: str) -> Optional[Dict[str, Any]]:
        metadata = self.backend.get(self.metadata_key(topic_id))
        if metadata is not None and not isinstance(metadata, dict):
            return None
        return metadata

    def set_topic_metadata(self, topic_id: str, metadata: Dict[str, Any]) -> bool:
        return self.backend.set_with_ttl(self.metadata_key(topic_id), metadata, self.metadata_ttl)

    def invalidate_topic(self, topic_id: str) -> int:
        """
        删除专题的所有题目池变体和元数据

        Args:
            topic_id: 专题ID

        Returns:
            删除的键数量
        """
        removed = self.backend.invalidate(f"{POOL_KEY_PREFIX}:{topic_id}:*")
        removed += self.backend.invalidate(self.metadata_key(topic_id))
        logger.info(f"专题缓存已失效: topic={topic_id}, removed={removed}")
        return removed


def create_pool_cache(config: EngineConfig) -> PoolCache:
    """根据配置创建题目池缓存"""
    if config.cache_enabled:
        backend: CacheBackend = RedisCacheBackend.from_url(config.redis_url)
        logger.info("题目池缓存使用 Redis 后端")
    else:
        backend = NullCacheBackend()
        logger.info("缓存已关闭，使用空缓存")

    return PoolCache(
        backend,
        pool_ttl=config.pool_cache_ttl,
        metadata_ttl=config.topic_metadata_ttl,
    )
