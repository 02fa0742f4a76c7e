"""
领域对象定义
业务层只操作这些数据类；内存仓储直接保存它们，SQL 仓储负责与表行互相转换
"""
import re
from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


# ============== 枚举定义 ==============

class CapsuleSection(str, Enum):
    """胶囊区域"""
    FRONT = "front"
    MIDDLE = "middle"
    BACK = "back"


class CapsulePosition(str, Enum):
    """上下铺"""
    TOP = "top"
    BOTTOM = "bottom"


class CleaningStatus(str, Enum):
    """清洁状态"""
    CLEANED = "cleaned"              # 已清洁
    TO_BE_CLEANED = "to_be_cleaned"  # 待清洁


class PaymentMethod(str, Enum):
    """支付方式"""
    CASH = "cash"
    TNG = "tng"            # Touch 'n Go 电子钱包
    BANK = "bank"          # 银行转账
    PLATFORM = "platform"  # OTA 平台代收


class Gender(str, Enum):
    """性别"""
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class CheckinSource(str, Enum):
    """入住来源"""
    STAFF = "staff"  # 前台办理
    SELF = "self"    # 自助入住链接


class EmployeeRole(str, Enum):
    """员工角色"""
    ADMIN = "admin"
    STAFF = "staff"


class NotificationType(str, Enum):
    """管理员通知类型"""
    SELF_CHECKIN = "self_checkin"
    CLEANING_REVIEW = "cleaning_review"
    MAINTENANCE = "maintenance"


_NUMBER_RE = re.compile(r"(\d+)")


def capsule_sort_key(number: str):
    """胶囊号自然排序：C2 排在 C10 之前"""
    match = _NUMBER_RE.search(number)
    digits = int(match.group(1)) if match else 0
    prefix = number[:match.start()] if match else number
    return (prefix, digits, number)


# ============== 领域对象 ==============

@dataclass
class Capsule:
    """
    胶囊床位
    cleaning_status 为 to_be_cleaned 时无论 is_available 如何都不可分配
    """
    number: str
    section: CapsuleSection
    is_available: bool = True
    cleaning_status: CleaningStatus = CleaningStatus.CLEANED
    last_cleaned_at: Optional[datetime] = None
    last_cleaned_by: Optional[str] = None
    color: Optional[str] = None
    purchase_date: Optional[date] = None
    position: Optional[CapsulePosition] = None
    remark: Optional[str] = None

    @property
    def effective_position(self) -> CapsulePosition:
        """未显式设置时按编号推断：偶数为下铺"""
        if self.position is not None:
            return self.position
        match = _NUMBER_RE.search(self.number)
        if match and int(match.group(1)) % 2 == 0:
            return CapsulePosition.BOTTOM
        return CapsulePosition.TOP

    @property
    def is_cleaned(self) -> bool:
        return self.cleaning_status == CleaningStatus.CLEANED


@dataclass
class Guest:
    """
    客人记录
    退房后保留为历史记录，不做物理删除
    """
    id: str
    name: str
    capsule_number: str
    checkin_time: datetime
    payment_method: PaymentMethod
    payment_collector: str
    payment_amount: Decimal = Decimal("0")
    is_paid: bool = False
    is_checked_in: bool = True
    checkout_time: Optional[datetime] = None
    expected_checkout_date: Optional[date] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    gender: Optional[Gender] = None
    nationality: Optional[str] = None
    age: Optional[int] = None
    id_number: Optional[str] = None
    passport_number: Optional[str] = None
    notes: Optional[str] = None
    checkin_source: CheckinSource = CheckinSource.STAFF
    self_checkin_token: Optional[str] = None
    can_edit_until: Optional[datetime] = None


@dataclass
class GuestToken:
    """
    自助入住令牌
    capsule_number 与 auto_assign 二选一；auto_assign 时在兑换时才分配胶囊
    """
    token: str
    expires_at: datetime
    created_by: str
    created_at: datetime
    capsule_number: Optional[str] = None
    auto_assign: bool = False
    guest_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    expected_checkout_date: Optional[date] = None
    is_used: bool = False
    used_at: Optional[datetime] = None

    def is_active(self, now: datetime) -> bool:
        """未使用且未过期"""
        return not self.is_used and self.expires_at > now


@dataclass
class CapsuleProblem:
    """胶囊维修问题"""
    id: str
    capsule_number: str
    description: str
    reported_by: str
    reported_at: datetime
    is_resolved: bool = False
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    notes: Optional[str] = None


@dataclass
class AppSetting:
    """系统设置项（值统一以字符串保存）"""
    key: str
    value: str
    description: Optional[str] = None
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None


@dataclass
class AdminNotification:
    """管理员通知"""
    id: str
    type: NotificationType
    title: str
    message: str
    created_at: datetime
    guest_id: Optional[str] = None
    capsule_number: Optional[str] = None
    is_read: bool = False


@dataclass
class Occupancy:
    """入住率统计"""
    total: int
    occupied: int
    available: int
    occupancy_rate: int


@dataclass
class CheckoutResult:
    """
    退房结果
    cleaning_flag_updated 为 False 表示客人已退房，但胶囊清洁状态需人工复核
    """
    guest: Guest
    cleaning_flag_updated: bool = True
    warning: Optional[str] = None
    capsule: Optional[Capsule] = field(default=None)
