"""
内容管理回调路由
供内容管理端在修改题目/选项后通知引擎，以及阅卷确认
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from exam_engine.api.deps import get_exam_engine
from exam_engine.core.errors import ExamEngineError
from exam_engine.services.engine import ExamEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/content", tags=["内容管理回调"])


@router.post("/topics/{topic_id}/invalidate-cache", status_code=status.HTTP_204_NO_CONTENT)
def invalidate_topic_caches(
    topic_id: str,
    engine: ExamEngine = Depends(get_exam_engine)
):
    """
    使专题的题目池和元数据缓存失效

    题目或选项的新增、编辑、删除、批量删除、导入之后都必须调用，
    下一次开始考试时会重新洗牌生成题目池。
    """
    engine.invalidate_topic_caches(topic_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/exams/{exam_id}/review", status_code=status.HTTP_204_NO_CONTENT)
def mark_exam_reviewed(
    exam_id: str,
    engine: ExamEngine = Depends(get_exam_engine)
):
    """阅卷确认：SUBMITTED -> REVIEWED"""
    try:
        engine.mark_reviewed(exam_id)
    except ExamEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
