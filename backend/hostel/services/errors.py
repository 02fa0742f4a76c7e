"""
业务异常定义
全部继承 ValueError，路由层统一转换为 HTTP 错误
"""
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

M = TypeVar("M", bound=BaseModel)


class HostelError(ValueError):
    """业务异常基类"""
    status_code = 400

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(HostelError):
    """必填字段缺失或格式错误，用户可修正后重试"""
    status_code = 400


class NotFoundError(HostelError):
    """对象不存在"""
    status_code = 404


class CapsuleNotFound(NotFoundError):
    def __init__(self, number: str):
        super().__init__(f"胶囊 {number} 不存在")
        self.number = number


class GuestNotFound(NotFoundError):
    def __init__(self, guest_id: str, message: Optional[str] = None):
        super().__init__(message or "客人不存在")
        self.guest_id = guest_id


class ProblemNotFound(NotFoundError):
    def __init__(self, problem_id: str):
        super().__init__("维修记录不存在")
        self.problem_id = problem_id


class SettingNotFound(NotFoundError):
    def __init__(self, key: str):
        super().__init__(f"设置项 {key} 不存在")
        self.key = key


class CapsuleUnavailable(HostelError):
    """胶囊不在可用列表中（已被占用、待清洁或停用），刷新后可重试"""
    status_code = 409

    def __init__(self, number: str, message: Optional[str] = None):
        super().__init__(message or f"胶囊 {number} 当前不可入住")
        self.number = number


class TokenInvalid(HostelError):
    """
    自助入住链接无效
    不区分过期、已使用或不存在，避免向未登录的客人泄露状态
    """
    status_code = 410

    def __init__(self):
        super().__init__("链接无效或已过期，请联系前台重新获取")


class ConflictError(HostelError):
    """并发修改冲突，需要重新读取状态后再操作"""
    status_code = 409


class EditWindowExpired(HostelError):
    """自助入住后的修改时限已过"""
    status_code = 403

    def __init__(self):
        super().__init__("信息修改时限已过，如需修改请联系前台")


class CapsuleOccupiedError(Exception):
    """仓储层：胶囊已有在住客人（唯一约束冲突）"""

    def __init__(self, capsule_number: str):
        super().__init__(capsule_number)
        self.capsule_number = capsule_number


def validate_payload(model: Type[M], data: Any) -> M:
    """把 dict 或模型实例校验为指定 Pydantic 模型，失败转换为 ValidationError"""
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        details = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        fields = ", ".join(d["field"] or "body" for d in details)
        raise ValidationError(f"输入校验失败: {fields}", details=details) from e
