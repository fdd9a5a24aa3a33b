"""
内容存储访问层
题目、选项、专题和考试记录的读写，是引擎唯一的权威数据源

事务由调用方（会话管理器）提交，这里只执行语句。
"""
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import insert as generic_insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from exam_engine.models import Topic, Question, Answer, Exam, ExamStatus

EXAM_UPDATABLE_FIELDS = {"status", "start_time", "end_time", "score", "attempts_count"}


class ContentStore:
    """内容存储（SQLAlchemy 实现）"""

    def __init__(self, db: Session):
        self.db = db

    # ---- 专题与题目 ----------------------------------------------------------

    def get_topic(self, topic_id: str) -> Optional[Topic]:
        return self.db.query(Topic).filter(Topic.id == topic_id).first()

    def get_active_question_ids(self, topic_id: str) -> List[str]:
        """专题下所有启用题目的ID（按ID升序）"""
        rows = self.db.query(Question.id).filter(
            Question.topic_id == topic_id,
            Question.is_active == True
        ).order_by(Question.id.asc()).all()
        return [row.id for row in rows]

    def get_active_questions(self, topic_id: str) -> List[Question]:
        return self.db.query(Question).filter(
            Question.topic_id == topic_id,
            Question.is_active == True
        ).order_by(Question.id.asc()).all()

    def get_question_content(self, question_ids: List[str]) -> List[Dict[str, Any]]:
        """
        按给定顺序获取题目内容

        Args:
            question_ids: 题目ID列表（顺序即返回顺序）

        Returns:
            List[dict]: 每项包含 id, content, is_multiple_choice
        """
        if not question_ids:
            return []

        questions = {
            q.id: q
            for q in self.db.query(Question).filter(Question.id.in_(question_ids)).all()
        }

        result = []
        for qid in question_ids:
            question = questions.get(qid)
            if question:
                result.append({
                    "id": question.id,
                    "content": question.content,
                    "is_multiple_choice": bool(question.is_multiple_choice),
                })
        return result

    def get_active_answers(self, question_id: str) -> List[Answer]:
        """题目的启用选项（按展示顺序）"""
        return self.db.query(Answer).filter(
            Answer.question_id == question_id,
            Answer.is_active == True
        ).order_by(Answer.sort_order.asc(), Answer.id.asc()).all()

    def get_active_answers_for_questions(self, question_ids: List[str]) -> Dict[str, List[Answer]]:
        """批量获取多道题的启用选项"""
        grouped: Dict[str, List[Answer]] = {qid: [] for qid in question_ids}
        if not question_ids:
            return grouped

        answers = self.db.query(Answer).filter(
            Answer.question_id.in_(question_ids),
            Answer.is_active == True
        ).order_by(Answer.sort_order.asc(), Answer.id.asc()).all()

        for answer in answers:
            grouped.setdefault(answer.question_id, []).append(answer)
        return grouped

    # ---- 考试记录 ------------------------------------------------------------

    def get_exam(self, exam_id: str) -> Optional[Exam]:
        return self.db.query(Exam).filter(Exam.id == exam_id).first()

    def get_or_create_exam(self, student_id: str, topic_id: str) -> Tuple[Exam, bool]:
        """
        原子地获取或创建 (学生, 专题) 的考试记录，并锁定该行

        先执行 insert-on-conflict-do-nothing，再 SELECT ... FOR UPDATE，
        调用方在同一事务内完成状态判断和修改后提交。

        Args:
            student_id: 学生ID
            topic_id: 专题ID

        Returns:
            (考试记录, 是否新建)
        """
        created = self._insert_exam_if_absent(student_id, topic_id)

        exam = self.db.query(Exam).filter(
            Exam.student_id == student_id,
            Exam.topic_id == topic_id
        ).with_for_update().populate_existing().one()

        return exam, created

    def _insert_exam_if_absent(self, student_id: str, topic_id: str) -> bool:
        values = {
            "id": str(uuid.uuid4()),
            "student_id": student_id,
            "topic_id": topic_id,
            "status": ExamStatus.IN_PROGRESS,
            "start_time": datetime.utcnow(),
            "end_time": None,
            "score": None,
            "attempts_count": 1,
        }
        conflict_columns = ["student_id", "topic_id"]
        dialect = self.db.get_bind().dialect.name

        if dialect == "postgresql":
            stmt = postgresql.insert(Exam).values(**values).on_conflict_do_nothing(
                index_elements=conflict_columns
            )
        elif dialect == "sqlite":
            stmt = sqlite.insert(Exam).values(**values).on_conflict_do_nothing(
                index_elements=conflict_columns
            )
        elif dialect in ("mysql", "mariadb"):
            stmt = generic_insert(Exam).values(**values).prefix_with("IGNORE")
        else:
            # 其他数据库依赖唯一约束，冲突时回滚到保存点
            try:
                with self.db.begin_nested():
                    self.db.execute(generic_insert(Exam).values(**values))
                return True
            except IntegrityError:
                return False

        result = self.db.execute(stmt)
        return result.rowcount == 1

    def update_exam(
        self,
        exam_id: str,
        fields: Dict[str, Any],
        expected_status: Optional[str] = None
    ) -> bool:
        """
        更新考试记录

        Args:
            exam_id: 考试ID
            fields: 要更新的字段
            expected_status: 仅当当前状态等于该值时才更新（条件更新）

        Returns:
            是否有记录被更新
        """
        unknown = set(fields) - EXAM_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"不允许更新的考试字段: {sorted(unknown)}")

        query = self.db.query(Exam).filter(Exam.id == exam_id)
        if expected_status is not None:
            query = query.filter(Exam.status == expected_status)

        updated = query.update(fields, synchronize_session="fetch")
        return updated > 0

    def get_best_completed_exam(self, student_id: str, topic_id: str) -> Optional[Exam]:
        """已完成且有分数的考试记录"""
        return self.db.query(Exam).filter(
            Exam.student_id == student_id,
            Exam.topic_id == topic_id,
            Exam.status.in_(ExamStatus.COMPLETED),
            Exam.score.isnot(None)
        ).order_by(Exam.score.desc(), Exam.start_time.desc()).first()

    def list_exams_for_student(self, student_id: str) -> List[Tuple[Exam, Topic]]:
        return self.db.query(Exam, Topic).join(
            Topic, Exam.topic_id == Topic.id
        ).filter(
            Exam.student_id == student_id
        ).order_by(Exam.start_time.desc()).all()
