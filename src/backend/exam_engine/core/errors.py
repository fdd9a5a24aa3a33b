"""
考试引擎领域异常

所有领域异常继承 ValueError，路由层统一转换为 HTTPException。
存储层异常（SQLAlchemyError）不在此列，直接向上抛出。
"""


class ExamEngineError(ValueError):
    """领域异常基类"""
    status_code = 400


class NotFoundError(ExamEngineError):
    """专题或考试不存在，或考试不属于该学生"""
    status_code = 404


class RetakeDeniedError(ExamEngineError):
    """已通过该专题，不允许重考"""
    status_code = 403


class ExamStateError(ExamEngineError):
    """考试状态不允许当前操作（如重复交卷）"""
    status_code = 409
