"""
路由依赖
配置和缓存在进程内只创建一次
"""
import logging
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from exam_engine.core.config import EngineConfig, get_engine_config
from exam_engine.core.database import get_db
from exam_engine.services.engine import ExamEngine
from exam_engine.services.pool_cache import PoolCache, create_pool_cache

logger = logging.getLogger(__name__)

# 全局实例
_config: Optional[EngineConfig] = None
_pool_cache: Optional[PoolCache] = None


def get_config() -> EngineConfig:
    """获取引擎配置（首次调用时从环境变量解析）"""
    global _config

    if _config is None:
        _config = get_engine_config()
    return _config


def get_pool_cache() -> PoolCache:
    """获取共享的题目池缓存"""
    global _pool_cache

    if _pool_cache is None:
        _pool_cache = create_pool_cache(get_config())
    return _pool_cache


def get_exam_engine(
    db: Session = Depends(get_db),
    cache: PoolCache = Depends(get_pool_cache),
    config: EngineConfig = Depends(get_config),
) -> ExamEngine:
    """每个请求一个考试引擎实例"""
    return ExamEngine.from_config(db, cache, config)
