"""
评分服务

单选：恰好选择一个且为正确选项得 1 分，否则 0 分
多选：max(0, (选对数 - 选错数) / 正确选项总数)，多选错选对称扣分，最低 0 分
总分：各题得分之和 / 题目总数 × 100，按分数精确计算后四舍五入（0.5 进位），专题无题目时为 0
及格：总分 > 0 且 及格线 > 0 且 总分 >= 及格线

正确答案每次都从内容存储读取，不使用缓存。
"""
import logging
import math
import re
from fractions import Fraction
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Set, Union

from exam_engine.core.errors import NotFoundError
from exam_engine.models import Answer
from exam_engine.services.content_store import ContentStore

if TYPE_CHECKING:
    from exam_engine.services.exam_session import ExamSessionManager

logger = logging.getLogger(__name__)

_OPTION_LABEL = re.compile(r"^[A-Z]$")


def option_label(index: int) -> str:
    """选项序号转标签：0 -> A, 1 -> B ..."""
    return chr(ord("A") + index)


def resolve_selections(selections: Any, answers: List[Answer]) -> Set[str]:
    """
    把提交的选项转换为选项ID集合

    选项可以是选项ID，也可以是 A-Z 标签（按展示顺序对应启用选项）。
    超出范围的标签被忽略，重复选择只计一次。
    """
    if selections is None:
        return set()
    if isinstance(selections, str):
        selections = [selections]

    resolved: Set[str] = set()
    for selected in selections:
        selected = str(selected)
        if _OPTION_LABEL.match(selected):
            index = ord(selected) - ord("A")
            if index < len(answers):
                resolved.add(answers[index].id)
        else:
            resolved.add(selected)
    return resolved


def score_single_choice(selected_ids: Set[str], correct_ids: Set[str]) -> Fraction:
    if len(selected_ids) != 1 or not correct_ids:
        return Fraction(0)
    return Fraction(1) if next(iter(selected_ids)) in correct_ids else Fraction(0)


def score_multiple_choice(selected_ids: Set[str], correct_ids: Set[str]) -> Fraction:
    total_correct = len(correct_ids)
    if total_correct == 0 or not selected_ids:
        return Fraction(0)
    correctly_selected = len(selected_ids & correct_ids)
    wrongly_selected = len(selected_ids - correct_ids)
    return Fraction(max(0, correctly_selected - wrongly_selected), total_correct)


def _exact(value: Union[int, float, Fraction]) -> Fraction:
    # float 按其十进制表示转换，0.4 -> 2/5
    if isinstance(value, float):
        return Fraction(repr(value))
    return Fraction(value)


def aggregate_score(question_scores: Iterable[Union[int, float, Fraction]], total_questions: int) -> int:
    """总分，0-100 的整数，四舍五入（0.5 进位），按分数精确计算"""
    if total_questions <= 0:
        return 0
    total = sum((_exact(s) for s in question_scores), Fraction(0))
    return math.floor(total * 100 / total_questions + Fraction(1, 2))


def is_passing(score: Optional[int], pass_score: Optional[int]) -> bool:
    """
    及格判定

    及格线未配置或 <= 0 的专题永远无法通过；0 分也永远不及格。
    """
    if score is None or pass_score is None:
        return False
    return score > 0 and pass_score > 0 and score >= pass_score


class ScoringEngine:
    """评分引擎"""

    def __init__(self, store: ContentStore, session_manager: "ExamSessionManager"):
        self.store = store
        self.session_manager = session_manager

    def grade(self, topic_id: str, submitted_answers: Mapping[str, Any]) -> Dict[str, Any]:
        """
        计算得分（不落库）

        Args:
            topic_id: 专题ID
            submitted_answers: 题目ID -> 所选选项（ID 或 A-Z 标签）

        Returns:
            dict: score, correct_count, total_questions, question_results
        """
        submitted_answers = submitted_answers or {}
        questions = self.store.get_active_questions(topic_id)
        answers_by_question = self.store.get_active_answers_for_questions([q.id for q in questions])

        question_scores: List[Fraction] = []
        question_results = []
        for question in questions:
            answers = answers_by_question.get(question.id, [])
            correct_ids = {a.id for a in answers if a.is_correct}
            selected_ids = resolve_selections(submitted_answers.get(question.id), answers)

            if question.is_multiple_choice:
                question_score = score_multiple_choice(selected_ids, correct_ids)
            else:
                question_score = score_single_choice(selected_ids, correct_ids)

            question_scores.append(question_score)
            question_results.append({
                "question_id": question.id,
                "selected_answer_ids": sorted(selected_ids),
                "question_score": float(question_score),
            })

        return {
            "score": aggregate_score(question_scores, len(questions)),
            "correct_count": round(float(sum(question_scores, Fraction(0))), 2),
            "total_questions": len(questions),
            "question_results": question_results,
        }

    def score(
        self,
        exam_id: str,
        student_id: str,
        topic_id: str,
        submitted_answers: Mapping[str, Any],
        user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        交卷评分并持久化

        Args:
            exam_id: 考试ID
            student_id: 学生ID
            topic_id: 专题ID
            submitted_answers: 题目ID -> 所选选项
            user_id: 登录用户ID（启用用户ID兼容模式时作为归属键）

        Returns:
            dict: exam_id, score, passed, correct_count, total_questions, pass_score, question_results

        Raises:
            NotFoundError: 考试或专题不存在，或考试不属于该学生/专题
            ExamStateError: 考试不在进行中
        """
        exam = self.session_manager.get_owned_exam(exam_id, student_id, topic_id, user_id=user_id)
        self.session_manager.ensure_in_progress(exam)

        topic = self.store.get_topic(topic_id)
        if not topic:
            raise NotFoundError(f"专题不存在: {topic_id}")

        result = self.grade(topic_id, submitted_answers)
        passed = is_passing(result["score"], topic.pass_score)

        self.session_manager.submit(exam.id, result["score"])

        logger.info(
            f"交卷完成: exam={exam.id} topic={topic_id} score={result['score']} "
            f"pass_score={topic.pass_score} passed={passed}"
        )

        return {
            "exam_id": exam.id,
            "score": result["score"],
            "passed": passed,
            "correct_count": result["correct_count"],
            "total_questions": result["total_questions"],
            "pass_score": topic.pass_score,
            "question_results": result["question_results"],
        }
