"""
考试记录模型
每个 (学生, 专题) 只有一条记录，重考时原地重置
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from .base import Base


class ExamStatus:
    """考试状态"""
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    REVIEWED = "REVIEWED"

    COMPLETED = (SUBMITTED, REVIEWED)


class Exam(Base):
    """考试记录"""
    __tablename__ = "exams"
    __table_args__ = (
        UniqueConstraint("student_id", "topic_id", name="uq_exams_student_topic"),
    )

    id = Column(String(36), primary_key=True)
    student_id = Column(String(36), nullable=False, index=True)  # 由外部鉴权层解析
    topic_id = Column(String(36), ForeignKey("topics.id"), nullable=False, index=True)
    status = Column(String(20), default=ExamStatus.IN_PROGRESS, index=True)
    start_time = Column(DateTime, default=datetime.utcnow)
    end_time = Column(DateTime, nullable=True)
    score = Column(Integer, nullable=True)  # 0-100
    attempts_count = Column(Integer, default=1)

    # 关系
    topic = relationship("Topic")

    def __repr__(self):
        return f"<Exam(id='{self.id}' student='{self.student_id}' topic='{self.topic_id}' status={self.status})>"
