"""
Models package
Export all database models
"""

from .base import Base
from .topic import Topic
from .question import Question, Answer
from .exam import Exam, ExamStatus

__all__ = [
    "Base",
    "Topic",
    "Question",
    "Answer",
    "Exam",
    "ExamStatus",
]


def init_db():
    """初始化数据库"""
    from ..core.database import engine

    # 创建所有表
    Base.metadata.create_all(bind=engine)
    print("✅ Database tables created successfully")


def drop_all():
    """删除所有表（仅开发测试用）"""
    from ..core.database import engine

    # 删除所有表
    Base.metadata.drop_all(bind=engine)
    print("⚠️  All tables dropped")
