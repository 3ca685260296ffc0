"""
SellerPay 错误处理系统
错误可转换为 RFC7807 Problem Details 结构，便于外部调用方展示
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class ProblemDetail(BaseModel):
    """RFC7807 Problem Details 模型"""
    type: str = Field(default="about:blank")
    title: str
    status: int
    detail: Optional[str] = None
    instance: Optional[str] = None
    code: Optional[str] = None  # 业务错误码
    purchase_id: Optional[int] = None  # 出错的购买ID（数据完整性错误）

    class Config:
        json_schema_extra = {
            "example": {
                "type": "about:blank",
                "title": "Payout Schedule Missing",
                "status": 409,
                "detail": "seller 42 has no payout schedule",
                "code": "PAYOUT_SCHEDULE_MISSING"
            }
        }


class PayoutException(Exception):
    """SellerPay 基础异常类"""

    def __init__(
        self,
        status: int,
        code: str,
        title: str,
        detail: Optional[str] = None,
        **kwargs
    ):
        self.status = status
        self.code = code
        self.title = title
        self.detail = detail
        self.extra = kwargs
        super().__init__(detail or title)

    def to_problem_detail(self, instance: Optional[str] = None) -> ProblemDetail:
        """转换为 Problem Details 格式"""
        return ProblemDetail(
            type="about:blank",
            title=self.title,
            status=self.status,
            detail=self.detail,
            instance=instance,
            code=self.code,
            **self.extra
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": False,
            "error": self.to_problem_detail().model_dump(exclude_none=True)
        }


class NotFoundError(PayoutException):
    """卖家不存在"""
    def __init__(self, code: str, resource: str):
        super().__init__(
            status=404,
            code=code,
            title="Not Found",
            detail=f"{resource} not found"
        )


class ConfigurationError(PayoutException):
    """结算配置缺失（如卖家没有结算计划）"""
    def __init__(self, code: str, detail: str):
        super().__init__(
            status=409,
            code=code,
            title="Configuration Error",
            detail=detail
        )


class DataIntegrityError(PayoutException):
    """上游写入的数据不满足约束（如退款金额超过购买金额）"""
    def __init__(self, code: str, detail: str, **kwargs):
        super().__init__(
            status=422,
            code=code,
            title="Data Integrity Violation",
            detail=detail,
            **kwargs
        )


class PersistenceError(PayoutException):
    """事务无法提交；不会留下部分状态，调用方可整体重试"""
    def __init__(self, code: str = "TRANSACTION_FAILED", detail: str = "Database transaction failed"):
        super().__init__(
            status=503,
            code=code,
            title="Persistence Error",
            detail=detail
        )
