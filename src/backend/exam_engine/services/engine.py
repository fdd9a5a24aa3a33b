"""
考试引擎门面

对外暴露的操作：
- start_or_resume_attempt: 开始/继续/重考
- submit_attempt: 交卷评分
- invalidate_topic_caches: 内容管理修改题目后使缓存失效
- get_exam_result / get_exam_history: 成绩与历史查询（只读）
"""
import random
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from exam_engine.core.config import EngineConfig
from exam_engine.core.errors import NotFoundError
from exam_engine.models import ExamStatus
from exam_engine.services.content_store import ContentStore
from exam_engine.services.exam_session import ExamSessionManager
from exam_engine.services.pool_cache import PoolCache
from exam_engine.services.question_pool import QuestionPoolGenerator
from exam_engine.services.scoring import ScoringEngine, is_passing


def _duration_minutes(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    if not start or not end:
        return None
    return int((end - start).total_seconds() // 60)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class ExamEngine:
    """考试引擎（每个请求一个实例，共享题目池缓存）"""

    def __init__(
        self,
        db: Session,
        cache: PoolCache,
        use_user_id_fallback: bool = False,
        rng: Optional[random.Random] = None
    ):
        self.store = ContentStore(db)
        self.pool_generator = QuestionPoolGenerator(self.store, cache, rng=rng)
        self.session_manager = ExamSessionManager(
            self.store,
            self.pool_generator,
            use_user_id_fallback=use_user_id_fallback,
        )
        self.scoring = ScoringEngine(self.store, self.session_manager)

    @classmethod
    def from_config(cls, db: Session, cache: PoolCache, config: EngineConfig) -> "ExamEngine":
        return cls(db, cache, use_user_id_fallback=config.use_user_id_fallback)

    def start_or_resume_attempt(
        self,
        student_id: str,
        topic_id: str,
        user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        return self.session_manager.start_or_resume(student_id, topic_id, user_id=user_id)

    def submit_attempt(
        self,
        exam_id: str,
        student_id: str,
        topic_id: str,
        submitted_answers: Mapping[str, Any],
        user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        return self.scoring.score(exam_id, student_id, topic_id, submitted_answers, user_id=user_id)

    def invalidate_topic_caches(self, topic_id: str) -> None:
        self.pool_generator.invalidate(topic_id)

    def mark_reviewed(self, exam_id: str) -> None:
        self.session_manager.mark_reviewed(exam_id)

    def get_exam_result(
        self,
        student_id: str,
        topic_id: str,
        user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        获取学生在专题上的已完成考试成绩（不会创建考试）

        Raises:
            NotFoundError: 专题不存在或还没有已完成的考试
        """
        topic = self.store.get_topic(topic_id)
        if not topic:
            raise NotFoundError(f"专题不存在: {topic_id}")

        owner_id = self.session_manager.resolve_owner_id(student_id, user_id)
        exam = self.store.get_best_completed_exam(owner_id, topic_id)
        if not exam:
            raise NotFoundError("该专题还没有考试成绩")

        return {
            "exam_id": exam.id,
            "topic_id": topic.id,
            "topic_name": topic.name,
            "score": exam.score,
            "pass_score": topic.pass_score,
            "passed": is_passing(exam.score, topic.pass_score),
            "status": exam.status,
            "attempts_count": exam.attempts_count,
            "start_time": _isoformat(exam.start_time),
            "end_time": _isoformat(exam.end_time),
            "duration_minutes": _duration_minutes(exam.start_time, exam.end_time),
        }

    def get_exam_history(self, student_id: str, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """学生的考试历史（按开始时间倒序）"""
        owner_id = self.session_manager.resolve_owner_id(student_id, user_id)

        history = []
        for exam, topic in self.store.list_exams_for_student(owner_id):
            history.append({
                "exam_id": exam.id,
                "topic_id": topic.id,
                "topic_name": topic.name,
                "score": exam.score,
                "pass_score": topic.pass_score,
                "passed": is_passing(exam.score, topic.pass_score),
                "status": exam.status or (ExamStatus.SUBMITTED if exam.end_time else ExamStatus.IN_PROGRESS),
                "attempts_count": exam.attempts_count,
                "start_time": _isoformat(exam.start_time),
                "end_time": _isoformat(exam.end_time),
                "duration_minutes": _duration_minutes(exam.start_time, exam.end_time),
            })
        return history
