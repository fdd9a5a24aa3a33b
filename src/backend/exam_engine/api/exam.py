"""
考试API路由
开始/继续考试、交卷、成绩与历史查询

身份由外部鉴权层解析，student_id / user_id 通过查询参数传递。
"""
from typing import Dict, List
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from exam_engine.api.deps import get_exam_engine
from exam_engine.core.errors import ExamEngineError
from exam_engine.services.engine import ExamEngine


router = APIRouter(prefix="/exam", tags=["考试"])


# Schemas
class SubmitExamRequest(BaseModel):
    """交卷请求"""
    topic_id: str
    answers: Dict[str, List[str]] = {}  # 题目ID -> 选项ID 或 A/B/C/D 标签


class QuestionResultResponse(BaseModel):
    """单题得分"""
    question_id: str
    selected_answer_ids: List[str]
    question_score: float


class SubmitExamResponse(BaseModel):
    """交卷结果"""
    exam_id: str
    score: int
    passed: bool
    correct_count: float
    total_questions: int
    pass_score: int | None
    question_results: List[QuestionResultResponse]


def _raise_http(e: ValueError):
    if isinstance(e, ExamEngineError):
        raise HTTPException(status_code=e.status_code, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


# Endpoints
@router.post("/topics/{topic_id}/start")
def start_exam(
    topic_id: str,
    student_id: str | None = None,
    user_id: str | None = None,
    engine: ExamEngine = Depends(get_exam_engine)
):
    """
    开始或继续专题考试

    业务逻辑说明：
    - 首次进入：创建考试记录
    - 有进行中的考试：返回同一场考试，题目顺序不变
    - 上次未及格：原地重置考试记录后重考
    - 上次已及格：拒绝（403）
    - 专题没有题目时返回空题目列表

    Returns:
        exam_id, status, attempts_count, start_time, topic, questions（不含正确答案）
    """
    try:
        result = engine.start_or_resume_attempt(student_id, topic_id, user_id=user_id)
    except ValueError as e:
        _raise_http(e)

    result["start_time"] = result["start_time"].isoformat() if result["start_time"] else None
    return result


@router.post("/{exam_id}/submit", response_model=SubmitExamResponse)
def submit_exam(
    exam_id: str,
    request: SubmitExamRequest,
    student_id: str | None = None,
    user_id: str | None = None,
    engine: ExamEngine = Depends(get_exam_engine)
):
    """
    交卷并计算成绩

    业务逻辑说明：
    - 正确答案实时从数据库读取
    - 多选题按 (选对 - 选错) / 正确选项数 给部分分，最低 0 分
    - 考试不属于该学生或专题不匹配时返回 404
    - 重复交卷返回 409
    """
    try:
        result = engine.submit_attempt(
            exam_id,
            student_id,
            request.topic_id,
            request.answers,
            user_id=user_id
        )
    except ValueError as e:
        _raise_http(e)

    return SubmitExamResponse(**result)


@router.get("/topics/{topic_id}/result")
def get_exam_result(
    topic_id: str,
    student_id: str | None = None,
    user_id: str | None = None,
    engine: ExamEngine = Depends(get_exam_engine)
):
    """查看专题考试成绩（不会创建考试）"""
    try:
        return engine.get_exam_result(student_id, topic_id, user_id=user_id)
    except ValueError as e:
        _raise_http(e)


@router.get("/history")
def get_exam_history(
    student_id: str | None = None,
    user_id: str | None = None,
    engine: ExamEngine = Depends(get_exam_engine)
):
    """学生的考试历史"""
    try:
        return {"history": engine.get_exam_history(student_id, user_id=user_id)}
    except ValueError as e:
        _raise_http(e)
