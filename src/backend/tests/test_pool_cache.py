"""
题目池缓存单元测试

测试覆盖：
1. 缓存键格式
2. Redis 后端读写与 TTL
3. 按专题失效
4. Redis 故障时退化为未命中
5. 关闭缓存时使用空缓存
"""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from conftest import FailingRedis  # noqa: E402
from exam_engine.core.config import EngineConfig  # noqa: E402
from exam_engine.services.pool_cache import (  # noqa: E402
    PoolCache,
    RedisCacheBackend,
    NullCacheBackend,
    create_pool_cache,
)


POOL = [
    {"id": "q2", "content": "第二题", "is_multiple_choice": False},
    {"id": "q1", "content": "第一题", "is_multiple_choice": True},
]


class TestCacheKeys:
    """缓存键格式"""

    def test_pool_key_with_size(self):
        assert PoolCache.pool_key("t1", 10) == "topic_questions:t1:10"

    def test_pool_key_without_size(self):
        assert PoolCache.pool_key("t1", None) == "topic_questions:t1:all"

    def test_metadata_key(self):
        assert PoolCache.metadata_key("t1") == "topic:metadata:t1"


class TestRedisCacheBackend:
    """Redis 缓存后端测试"""

    def test_pool_round_trip_keeps_order(self, pool_cache, mock_redis):
        """写入后读取，题目顺序不变"""
        assert pool_cache.set_pool("t1", 2, POOL) is True

        assert pool_cache.get_pool("t1", 2) == POOL
        assert mock_redis.ttls["topic_questions:t1:2"] == 86400

    def test_metadata_ttl(self, pool_cache, mock_redis):
        pool_cache.set_topic_metadata("t1", {"id": "t1", "pass_score": 70})

        assert pool_cache.get_topic_metadata("t1") == {"id": "t1", "pass_score": 70}
        assert mock_redis.ttls["topic:metadata:t1"] == 21600

    def test_miss_returns_none(self, pool_cache):
        assert pool_cache.get_pool("t1", None) is None
        assert pool_cache.get_topic_metadata("t1") is None

    def test_sizes_are_cached_separately(self, pool_cache):
        pool_cache.set_pool("t1", 2, POOL)

        assert pool_cache.get_pool("t1", None) is None
        assert pool_cache.get_pool("t1", 3) is None

    def test_corrupt_value_is_a_miss(self, mock_redis):
        """无法解析的缓存内容按未命中处理"""
        mock_redis.set("topic_questions:t1:all", "not json{")
        cache = PoolCache(RedisCacheBackend(mock_redis))

        assert cache.get_pool("t1", None) is None

    def test_wrong_shape_is_a_miss(self, mock_redis):
        mock_redis.set("topic_questions:t1:all", '{"id": "q1"}')
        cache = PoolCache(RedisCacheBackend(mock_redis))

        assert cache.get_pool("t1", None) is None

    def test_is_available(self, mock_redis):
        assert RedisCacheBackend(mock_redis).is_available() is True


class TestInvalidateTopic:
    """按专题失效"""

    def test_removes_all_pool_variants_and_metadata(self, pool_cache, mock_redis):
        pool_cache.set_pool("t1", None, POOL)
        pool_cache.set_pool("t1", 1, POOL[:1])
        pool_cache.set_topic_metadata("t1", {"id": "t1"})

        removed = pool_cache.invalidate_topic("t1")

        assert removed == 3
        assert pool_cache.get_pool("t1", None) is None
        assert pool_cache.get_pool("t1", 1) is None
        assert pool_cache.get_topic_metadata("t1") is None

    def test_other_topics_untouched(self, pool_cache):
        """失效 t1 不影响 t10 等前缀相似的专题"""
        pool_cache.set_pool("t1", None, POOL)
        pool_cache.set_pool("t10", None, POOL)
        pool_cache.set_topic_metadata("t10", {"id": "t10"})

        pool_cache.invalidate_topic("t1")

        assert pool_cache.get_pool("t10", None) == POOL
        assert pool_cache.get_topic_metadata("t10") == {"id": "t10"}

    def test_nothing_to_remove(self, pool_cache):
        assert pool_cache.invalidate_topic("missing") == 0


class TestRedisFailure:
    """Redis 不可用时所有操作退化"""

    def test_failures_degrade(self):
        cache = PoolCache(RedisCacheBackend(FailingRedis()))

        assert cache.get_pool("t1", None) is None
        assert cache.set_pool("t1", None, POOL) is False
        assert cache.get_topic_metadata("t1") is None
        assert cache.set_topic_metadata("t1", {"id": "t1"}) is False
        assert cache.invalidate_topic("t1") == 0
        assert cache.backend.is_available() is False


class TestNullCache:
    """空缓存测试"""

    def test_always_misses(self, null_cache):
        assert null_cache.set_pool("t1", None, POOL) is False
        assert null_cache.get_pool("t1", None) is None
        assert null_cache.invalidate_topic("t1") == 0
        assert null_cache.backend.is_available() is False

    def test_factory_respects_disabled_cache(self):
        config = EngineConfig(cache_enabled=False, pool_cache_ttl=60, topic_metadata_ttl=30)

        cache = create_pool_cache(config)

        assert isinstance(cache.backend, NullCacheBackend)
        assert cache.pool_ttl == 60
        assert cache.metadata_ttl == 30

    def test_factory_builds_redis_backend(self):
        """Redis.from_url 不会立即建立连接"""
        cache = create_pool_cache(EngineConfig(redis_url="redis://localhost:6399/0"))

        assert isinstance(cache.backend, RedisCacheBackend)
