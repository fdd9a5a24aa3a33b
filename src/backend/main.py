"""
FastAPI应用入口
"""
from dotenv import load_dotenv
from pathlib import Path
import logging

# 加载环境变量 - 优先从根目录加载，回退到当前目录
root_env = Path(__file__).parent.parent.parent / ".env"
if root_env.exists():
    load_dotenv(root_env)
else:
    load_dotenv()

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from exam_engine import __version__
from exam_engine.api import exam, content
from exam_engine.api.deps import get_config, get_pool_cache
from exam_engine.core.config import EngineConfig
from exam_engine.services.pool_cache import PoolCache

config = get_config()

logging.basicConfig(
    level=config.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _get_cors_config() -> tuple[list[str], str | None]:
    """
    获取 CORS 配置

    Returns:
        (allow_origins, allow_origin_regex)
        - 生产环境：使用精确匹配的 origins 列表
        - 未配置：使用正则匹配本地端口，方便本地开发
    """
    if config.allowed_origins:
        return config.allowed_origins, None

    logger.warning("未配置 ALLOWED_ORIGINS，仅允许本地开发源跨域")
    return [], r"http://(localhost|127\.0\.0\.1)(:\d+)?"


app = FastAPI(
    title="Exam Session Engine API",
    description="Question pools, exam attempts and scoring",
    version=__version__
)

allow_origins, allow_origin_regex = _get_cors_config()
logger.info(f"CORS 配置: origins={allow_origins}, regex={allow_origin_regex}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_origin_regex=allow_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 包含所有路由
app.include_router(exam.router, prefix="/api", tags=["考试"])
app.include_router(content.router, prefix="/api", tags=["内容管理回调"])


@app.get("/")
async def root():
    """根路径"""
    return {"message": "Exam Session Engine API", "docs": "/docs"}


@app.get("/health")
def health(
    cache: PoolCache = Depends(get_pool_cache),
    engine_config: EngineConfig = Depends(get_config)
):
    """健康检查"""
    return {
        "status": "healthy",
        "cache_enabled": engine_config.cache_enabled,
        "cache_available": cache.backend.is_available(),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
