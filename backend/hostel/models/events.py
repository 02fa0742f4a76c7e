"""
领域事件定义 (Domain Events)
入住、退房、清洁、自助入住等关键动作都会发布事件
"""
from enum import Enum
from dataclasses import dataclass, field, asdict
from datetime import datetime, date
from typing import Optional, Dict, Any


class EventType(str, Enum):
    """事件类型枚举"""
    # 入住相关
    GUEST_CHECKED_IN = "guest.checked_in"
    GUEST_CHECKED_OUT = "guest.checked_out"
    GUEST_SELF_CHECKED_IN = "guest.self_checked_in"

    # 胶囊相关
    CAPSULE_CLEANING_CHANGED = "capsule.cleaning_changed"
    CAPSULE_CLEANING_REVIEW_REQUIRED = "capsule.cleaning_review_required"

    # 自助入住链接
    TOKEN_ISSUED = "token.issued"
    TOKEN_REDEEMED = "token.redeemed"
    TOKENS_SWEPT = "tokens.swept"

    # 维修相关
    PROBLEM_REPORTED = "maintenance.problem_reported"
    PROBLEM_RESOLVED = "maintenance.problem_resolved"


@dataclass
class BaseEventData:
    """事件数据基类"""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        result = asdict(self)
        # 处理日期序列化
        for key, value in result.items():
            if isinstance(value, (datetime, date)):
                result[key] = value.isoformat()
        return result


@dataclass
class GuestCheckedInData(BaseEventData):
    """客人入住事件数据"""
    guest_id: str = ""
    guest_name: str = ""
    capsule_number: str = ""
    checkin_time: Optional[datetime] = None
    source: str = "staff"
    operator: str = ""


@dataclass
class GuestCheckedOutData(BaseEventData):
    """客人退房事件数据"""
    guest_id: str = ""
    guest_name: str = ""
    capsule_number: str = ""
    checkout_time: Optional[datetime] = None
    cleaning_flag_updated: bool = True
    operator: str = ""


@dataclass
class CapsuleCleaningChangedData(BaseEventData):
    """胶囊清洁状态变更事件数据"""
    capsule_number: str = ""
    old_status: str = ""
    new_status: str = ""
    changed_by: Optional[str] = None
    reason: str = ""


@dataclass
class CleaningReviewRequiredData(BaseEventData):
    """退房后清洁状态写入失败，需要人工复核"""
    capsule_number: str = ""
    guest_id: str = ""
    guest_name: str = ""
    error: str = ""


@dataclass
class TokenIssuedData(BaseEventData):
    """自助入住链接生成事件数据"""
    token: str = ""
    capsule_number: Optional[str] = None
    auto_assign: bool = False
    expires_at: Optional[datetime] = None
    created_by: str = ""


@dataclass
class TokenRedeemedData(BaseEventData):
    """自助入住完成事件数据"""
    token: str = ""
    guest_id: str = ""
    guest_name: str = ""
    capsule_number: str = ""
    auto_assigned: bool = False


@dataclass
class TokensSweptData(BaseEventData):
    """过期链接清理事件数据"""
    deleted_count: int = 0


@dataclass
class ProblemReportedData(BaseEventData):
    """维修问题事件数据"""
    problem_id: str = ""
    capsule_number: str = ""
    description: str = ""
    reported_by: str = ""
