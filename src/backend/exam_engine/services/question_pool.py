"""
题目池生成服务
为专题生成随机、限量的题目序列，并写入题目池缓存
"""
import logging
import random
from typing import Any, Dict, List, Optional

from exam_engine.core.errors import NotFoundError
from exam_engine.services.content_store import ContentStore
from exam_engine.services.pool_cache import PoolCache

logger = logging.getLogger(__name__)


class QuestionPoolGenerator:
    """题目池生成器"""

    def __init__(
        self,
        store: ContentStore,
        cache: PoolCache,
        rng: Optional[random.Random] = None
    ):
        self.store = store
        self.cache = cache
        self.rng = rng or random.SystemRandom()

    def get_topic_metadata(self, topic_id: str) -> Dict[str, Any]:
        """
        获取专题元数据（先查缓存）

        Args:
            topic_id: 专题ID

        Returns:
            dict: id, name, duration_minutes, pass_score, question_count

        Raises:
            NotFoundError: 专题不存在
        """
        metadata = self.cache.get_topic_metadata(topic_id)
        if metadata is not None:
            logger.debug(f"Cache HIT: 专题元数据 topic={topic_id}")
            return metadata

        topic = self.store.get_topic(topic_id)
        if not topic:
            raise NotFoundError(f"专题不存在: {topic_id}")

        metadata = topic.to_metadata()
        self.cache.set_topic_metadata(topic_id, metadata)
        logger.debug(f"Cache MISS: 已缓存专题元数据 topic={topic_id}")
        return metadata

    def get_pool(self, topic_id: str, desired_size: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        获取专题的题目池

        规则：
        - desired_size 未指定时使用专题配置的 question_count，未配置或 <= 0 时使用全部题目
        - 缓存命中直接返回（保证继续作答时题目顺序不变）
        - 未命中时洗牌、截断、按洗牌顺序取题目内容并写入缓存
        - 专题没有题目时返回空列表，不写缓存

        Args:
            topic_id: 专题ID
            desired_size: 题目池大小（可选）

        Returns:
            List[dict]: 有序题目列表，每项包含 id, content, is_multiple_choice

        Raises:
            NotFoundError: 专题不存在
            ValueError: desired_size 不是正整数
        """
        if desired_size is not None and desired_size <= 0:
            raise ValueError("desired_size 必须为正整数")

        metadata = self.get_topic_metadata(topic_id)
        configured = metadata.get("question_count")
        if configured is not None and configured <= 0:
            configured = None
        size = desired_size or configured

        cached = self.cache.get_pool(topic_id, size)
        if cached is not None:
            logger.info(f"Cache HIT: 使用缓存的题目池 topic={topic_id} size={size or 'all'}")
            return cached

        logger.info(f"Cache MISS: 生成新的题目池 topic={topic_id} size={size or 'all'}")

        question_ids = self.store.get_active_question_ids(topic_id)
        if not question_ids:
            logger.info(f"专题没有可用题目: topic={topic_id}")
            return []

        shuffled = list(question_ids)
        self.rng.shuffle(shuffled)
        selected = shuffled[:size] if size else shuffled

        logger.info(
            f"[QuestionPool] topic={topic_id} total={len(question_ids)} "
            f"configured={metadata.get('question_count')} requested={desired_size} used={len(selected)}"
        )

        pool = self.store.get_question_content(selected)
        self.cache.set_pool(topic_id, size, pool)
        return pool

    def invalidate(self, topic_id: str) -> int:
        """使专题的所有题目池和元数据缓存失效"""
        return self.cache.invalidate_topic(topic_id)
