"""
Pytest 配置和通用 Fixtures

提供内存 SQLite 会话、Mock Redis 和测试数据构造函数
"""
import fnmatch
import os
import random
import sys
import uuid
from typing import Dict, List, Optional

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from exam_engine.models import Base, Topic, Question, Answer  # noqa: E402
from exam_engine.services.engine import ExamEngine  # noqa: E402
from exam_engine.services.pool_cache import PoolCache, RedisCacheBackend, NullCacheBackend  # noqa: E402


# ==================== Mock Redis ====================

class MockRedis:
    """
    Mock Redis 客户端，在内存中存储数据
    只实现缓存后端用到的命令
    """

    def __init__(self):
        self._data: Dict[str, bytes] = {}
        self.ttls: Dict[str, Optional[int]] = {}
        self.get_calls: List[str] = []
        self.set_calls: List[str] = []

    def get(self, key):
        self.get_calls.append(key)
        return self._data.get(key)

    def set(self, key, value, ex=None):
        self.set_calls.append(key)
        self._data[key] = value.encode("utf-8") if isinstance(value, str) else value
        self.ttls[key] = ex
        return True

    def scan_iter(self, match=None):
        for key in list(self._data.keys()):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if key in self._data:
                del self._data[key]
                self.ttls.pop(key, None)
                removed += 1
        return removed

    def ping(self):
        return True


class FailingRedis:
    """所有命令都抛出连接错误的 Redis 客户端"""

    def _fail(self, *args, **kwargs):
        raise RedisConnectionError("redis unavailable")

    get = set = delete = ping = _fail

    def scan_iter(self, match=None):
        raise RedisConnectionError("redis unavailable")


@pytest.fixture
def mock_redis():
    """创建 Mock Redis"""
    return MockRedis()


@pytest.fixture
def pool_cache(mock_redis):
    """使用 Mock Redis 的题目池缓存"""
    return PoolCache(RedisCacheBackend(mock_redis), pool_ttl=86400, metadata_ttl=21600)


@pytest.fixture
def null_cache():
    """空缓存"""
    return PoolCache(NullCacheBackend())


# ==================== Database ====================

@pytest.fixture
def db_engine():
    """内存 SQLite 引擎（所有连接共享同一个库）"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """数据库会话"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = SessionLocal()
    yield db
    db.close()


@pytest.fixture
def exam_engine(db_session, pool_cache):
    """使用固定随机种子的考试引擎"""
    return ExamEngine(db_session, pool_cache, rng=random.Random(42))


# ==================== 测试数据 ====================

def create_topic(
    db,
    pass_score: Optional[int] = 70,
    question_count: Optional[int] = None,
    duration_minutes: int = 30,
    name: str = "网络安全基础"
) -> Topic:
    """创建专题"""
    topic = Topic(
        id=str(uuid.uuid4()),
        name=name,
        description="测试专题",
        duration_minutes=duration_minutes,
        pass_score=pass_score,
        question_count=question_count,
    )
    db.add(topic)
    db.commit()
    return topic


def add_question(
    db,
    topic: Topic,
    num_options: int = 4,
    num_correct: int = 1,
    content: Optional[str] = None,
    is_active: bool = True
) -> Question:
    """
    创建题目，前 num_correct 个选项为正确选项

    正确选项多于一个即为多选题
    """
    question = Question(
        id=str(uuid.uuid4()),
        topic_id=topic.id,
        content=content or f"题目 {uuid.uuid4().hex[:6]}",
        is_multiple_choice=num_correct > 1,
        is_active=is_active,
    )
    db.add(question)
    for idx in range(num_options):
        db.add(Answer(
            id=str(uuid.uuid4()),
            question_id=question.id,
            content=f"选项 {idx + 1}",
            is_correct=idx < num_correct,
            is_active=True,
            sort_order=idx,
        ))
    db.commit()
    return question


def answers_of(db, question: Question) -> List[Answer]:
    """题目的选项（按展示顺序）"""
    return db.query(Answer).filter(
        Answer.question_id == question.id
    ).order_by(Answer.sort_order.asc()).all()


def correct_ids(db, question: Question) -> List[str]:
    return [a.id for a in answers_of(db, question) if a.is_correct]


def wrong_ids(db, question: Question) -> List[str]:
    return [a.id for a in answers_of(db, question) if not a.is_correct]
