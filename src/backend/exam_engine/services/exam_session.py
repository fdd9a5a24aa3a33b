"""
考试会话管理服务

每个 (学生, 专题) 一条考试记录的状态机：
    NONE -> IN_PROGRESS                 首次进入，创建记录
    IN_PROGRESS -> IN_PROGRESS          继续作答，不重置时间、不重新出题
    SUBMITTED|REVIEWED -> IN_PROGRESS   未及格重考，原地重置记录，attempts_count + 1
    SUBMITTED|REVIEWED -> 拒绝          已及格，不允许重考
    IN_PROGRESS -> SUBMITTED            交卷
    SUBMITTED -> REVIEWED               阅卷确认

创建/继续/重考的判断与修改在同一事务内完成，
考试记录通过 upsert + 行锁获取，避免并发开始考试产生重复记录。
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from exam_engine.core.errors import NotFoundError, RetakeDeniedError, ExamStateError
from exam_engine.models import Exam, ExamStatus
from exam_engine.services.content_store import ContentStore
from exam_engine.services.question_pool import QuestionPoolGenerator
from exam_engine.services.scoring import is_passing, option_label

logger = logging.getLogger(__name__)


class ExamSessionManager:
    """考试会话管理器"""

    def __init__(
        self,
        store: ContentStore,
        pool_generator: QuestionPoolGenerator,
        use_user_id_fallback: bool = False
    ):
        self.store = store
        self.pool_generator = pool_generator
        self.use_user_id_fallback = use_user_id_fallback

    def resolve_owner_id(self, student_id: Optional[str], user_id: Optional[str] = None) -> str:
        """
        考试记录的归属键

        兼容模式下使用登录用户ID，否则使用学生ID。
        """
        owner_id = user_id if self.use_user_id_fallback else student_id
        if not owner_id:
            field = "user_id" if self.use_user_id_fallback else "student_id"
            raise ValueError(f"{field} is required")
        return owner_id

    def start_or_resume(
        self,
        student_id: str,
        topic_id: str,
        user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        开始或继续一次考试

        Args:
            student_id: 学生ID
            topic_id: 专题ID
            user_id: 登录用户ID

        Returns:
            dict: exam_id, status, attempts_count, start_time, topic, questions

        Raises:
            NotFoundError: 专题不存在
            RetakeDeniedError: 已通过该专题
        """
        metadata = self.pool_generator.get_topic_metadata(topic_id)
        owner_id = self.resolve_owner_id(student_id, user_id)
        db = self.store.db

        try:
            exam, created = self.store.get_or_create_exam(owner_id, topic_id)

            if created:
                logger.info(f"创建考试: exam={exam.id} student={owner_id} topic={topic_id}")
            elif exam.status == ExamStatus.IN_PROGRESS:
                logger.info(f"继续进行中的考试: exam={exam.id}")
            elif exam.status in ExamStatus.COMPLETED:
                if is_passing(exam.score, metadata.get("pass_score")):
                    logger.info(
                        f"考试已通过，拒绝重考: exam={exam.id} "
                        f"score={exam.score}/{metadata.get('pass_score')}"
                    )
                    raise RetakeDeniedError("该专题考试已通过，不能重考")
                logger.info(
                    f"考试未通过，允许重考: exam={exam.id} "
                    f"score={exam.score}/{metadata.get('pass_score')}"
                )
                self._reset_for_retake(exam)
            else:
                logger.info(f"考试状态异常，重置: exam={exam.id} status={exam.status}")
                self._reset_for_retake(exam)

            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(exam)
        pool = self.pool_generator.get_pool(topic_id)

        return {
            "exam_id": exam.id,
            "status": exam.status,
            "attempts_count": exam.attempts_count,
            "start_time": exam.start_time,
            "topic": {
                "id": metadata.get("id"),
                "name": metadata.get("name"),
                "time_limit_minutes": metadata.get("duration_minutes"),
                "pass_score": metadata.get("pass_score"),
            },
            "questions": self._present_questions(pool),
        }

    def _reset_for_retake(self, exam: Exam) -> None:
        exam.start_time = datetime.utcnow()
        exam.end_time = None
        exam.score = None
        exam.status = ExamStatus.IN_PROGRESS
        exam.attempts_count = (exam.attempts_count or 0) + 1

    def _present_questions(self, pool: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        组装返回给学生的题目（不含正确答案）

        选项从内容存储实时读取，题目池缓存只保存题目内容和顺序。
        """
        answers_by_question = self.store.get_active_answers_for_questions([q["id"] for q in pool])

        questions = []
        for item in pool:
            answers = answers_by_question.get(item["id"], [])
            questions.append({
                "id": item["id"],
                "content": item["content"],
                "type": "multiple_choice" if item.get("is_multiple_choice") else "single_choice",
                "options": [
                    {"label": option_label(idx), "answer_id": answer.id, "text": answer.content}
                    for idx, answer in enumerate(answers)
                ],
            })
        return questions

    def get_owned_exam(
        self,
        exam_id: str,
        student_id: str,
        topic_id: str,
        user_id: Optional[str] = None
    ) -> Exam:
        """
        获取属于该学生且属于该专题的考试记录

        Raises:
            NotFoundError: 不存在或归属不匹配
        """
        owner_id = self.resolve_owner_id(student_id, user_id)
        exam = self.store.get_exam(exam_id)
        if not exam or exam.student_id != owner_id or exam.topic_id != topic_id:
            raise NotFoundError("考试不存在或不属于当前学生")
        return exam

    @staticmethod
    def ensure_in_progress(exam: Exam) -> None:
        if exam.status != ExamStatus.IN_PROGRESS:
            raise ExamStateError(f"考试不在进行中: status={exam.status}")

    def submit(self, exam_id: str, score: int) -> None:
        """
        交卷：IN_PROGRESS -> SUBMITTED

        条件更新，只有进行中的考试会被修改。

        Raises:
            ExamStateError: 考试已不在进行中（并发交卷）
        """
        db = self.store.db
        try:
            updated = self.store.update_exam(
                exam_id,
                {
                    "end_time": datetime.utcnow(),
                    "score": score,
                    "status": ExamStatus.SUBMITTED,
                },
                expected_status=ExamStatus.IN_PROGRESS,
            )
            if not updated:
                raise ExamStateError("考试已提交，不能重复交卷")
            db.commit()
        except Exception:
            db.rollback()
            raise

    def mark_reviewed(self, exam_id: str) -> None:
        """
        阅卷确认：SUBMITTED -> REVIEWED

        Raises:
            NotFoundError: 考试不存在
            ExamStateError: 考试未提交
        """
        db = self.store.db
        try:
            if not self.store.get_exam(exam_id):
                raise NotFoundError(f"考试不存在: {exam_id}")
            updated = self.store.update_exam(
                exam_id,
                {"status": ExamStatus.REVIEWED},
                expected_status=ExamStatus.SUBMITTED,
            )
            if not updated:
                raise ExamStateError("只有已提交的考试可以标记为已阅")
            db.commit()
        except Exception:
            db.rollback()
            raise
