"""
Services package
"""

from .content_store import ContentStore
from .pool_cache import PoolCache, CacheBackend, RedisCacheBackend, NullCacheBackend, create_pool_cache
from .question_pool import QuestionPoolGenerator
from .exam_session import ExamSessionManager
from .scoring import ScoringEngine
from .engine import ExamEngine

__all__ = [
    "ContentStore",
    "PoolCache",
    "CacheBackend",
    "RedisCacheBackend",
    "NullCacheBackend",
    "create_pool_cache",
    "QuestionPoolGenerator",
    "ExamSessionManager",
    "ScoringEngine",
    "ExamEngine",
]
