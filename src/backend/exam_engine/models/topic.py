"""
专题模型
考试配置（时长、及格分、题量）挂在专题上
"""
from sqlalchemy import Column, String, Integer, Text, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime

from .base import Base


class Topic(Base):
    """专题模型"""
    __tablename__ = "topics"

    id = Column(String(36), primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    duration_minutes = Column(Integer, nullable=True)
    pass_score = Column(Integer, nullable=True)  # 0-100, <=0 表示永远无法及格
    question_count = Column(Integer, nullable=True)  # 题目池大小，0/NULL 表示全部题目
    created_at = Column(DateTime, default=datetime.utcnow)

    # 关系
    questions = relationship("Question", back_populates="topic")

    def to_metadata(self) -> dict:
        """专题元数据（可缓存部分）"""
        return {
            "id": self.id,
            "name": self.name,
            "duration_minutes": self.duration_minutes,
            "pass_score": self.pass_score,
            "question_count": self.question_count,
        }

    def __repr__(self):
        return f"<Topic(id='{self.id}' name='{self.name}' pass_score={self.pass_score})>"
