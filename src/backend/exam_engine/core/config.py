"""
引擎配置管理模块

统一管理缓存、日志和考试会话相关配置，数据库连接见 core.database。
配置在启动时解析一次，之后以参数形式传入各服务，运行期不修改。
配置优先级：环境变量 > 默认值
"""

import os
from dataclasses import dataclass, field
from typing import List


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EngineConfig:
    """
    考试引擎配置

    Attributes:
        redis_url: Redis 连接 URL
        cache_enabled: 是否启用 Redis 缓存（关闭时使用空缓存）
        pool_cache_ttl: 题目池缓存过期时间（秒）
        topic_metadata_ttl: 专题元数据缓存过期时间（秒）
        use_user_id_fallback: 考试记录的归属键使用登录用户ID而非学生ID（兼容旧表结构）
        log_level: 日志级别
        allowed_origins: CORS 允许的源
    """
    redis_url: str = "redis://localhost:6379/0"
    cache_enabled: bool = True
    pool_cache_ttl: int = 86400
    topic_metadata_ttl: int = 21600
    use_user_id_fallback: bool = False
    log_level: str = "INFO"
    allowed_origins: List[str] = field(default_factory=list)


def get_engine_config() -> EngineConfig:
    """
    从环境变量获取引擎配置

    环境变量：
        REDIS_URL: Redis 连接
        CACHE_ENABLED: 是否启用缓存（默认 true）
        POOL_CACHE_TTL: 题目池缓存 TTL，默认 24 小时
        TOPIC_METADATA_TTL: 专题元数据缓存 TTL，默认 6 小时
        EXAM_USE_USER_ID_FALLBACK: 是否以用户ID作为考试归属键
        LOG_LEVEL: 日志级别
        ALLOWED_ORIGINS: CORS 源，逗号分隔

    Returns:
        EngineConfig 配置对象

    Raises:
        ValueError: TTL 配置不是正整数时
    """
    pool_ttl = int(os.getenv("POOL_CACHE_TTL", "86400"))
    metadata_ttl = int(os.getenv("TOPIC_METADATA_TTL", "21600"))
    if pool_ttl <= 0 or metadata_ttl <= 0:
        raise ValueError("缓存 TTL 必须为正整数")

    origins_str = os.getenv("ALLOWED_ORIGINS", "")
    origins = [origin.strip() for origin in origins_str.split(",") if origin.strip()]

    return EngineConfig(
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        cache_enabled=_env_bool("CACHE_ENABLED", True),
        pool_cache_ttl=pool_ttl,
        topic_metadata_ttl=metadata_ttl,
        use_user_id_fallback=_env_bool("EXAM_USE_USER_ID_FALLBACK", False),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        allowed_origins=origins,
    )
