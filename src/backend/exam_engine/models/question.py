"""
题目与选项模型
"""
from sqlalchemy import Column, String, Integer, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from .base import Base


class Question(Base):
    """题目模型"""
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True, index=True)
    topic_id = Column(String(36), ForeignKey("topics.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    is_multiple_choice = Column(Boolean, default=False)  # 录入时正确选项多于一个即为多选
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # 关系
    topic = relationship("Topic", back_populates="questions")
    answers = relationship("Answer", back_populates="question")

    def __repr__(self):
        return f"<Question(id='{self.id}' multiple={self.is_multiple_choice} content='{self.content[:30]}...')>"


class Answer(Base):
    """选项模型"""
    __tablename__ = "answers"

    id = Column(String(36), primary_key=True, index=True)
    question_id = Column(String(36), ForeignKey("questions.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    is_correct = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)  # 软删除的选项不出现在题目池和评分中
    sort_order = Column(Integer, default=0)  # 展示顺序，决定 A/B/C/D 标签
    created_at = Column(DateTime, default=datetime.utcnow)

    # 关系
    question = relationship("Question", back_populates="answers")

    def __repr__(self):
        return f"<Answer(id='{self.id}' qid='{self.question_id}' correct={self.is_correct})>"
