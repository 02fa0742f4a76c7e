"""
Pydantic 模式定义
用于服务层输入校验与 API 请求/响应
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List, Generic, TypeVar
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from hostel.models.entities import (
    CapsuleSection, CapsulePosition, CleaningStatus, PaymentMethod, Gender,
    CheckinSource, EmployeeRole, NotificationType
)

T = TypeVar("T")


# ============== 分页 Schemas ==============

class PaginationParams(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=500)


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool


class Page(BaseModel, Generic[T]):
    """分页结果 {data, pagination}"""
    data: List[T]
    pagination: PaginationInfo


def paginate(items: list, params: Optional[PaginationParams] = None) -> Page:
    """对已排序的列表切片分页"""
    params = params or PaginationParams()
    total = len(items)
    start = (params.page - 1) * params.limit
    total_pages = (total + params.limit - 1) // params.limit
    return Page(
        data=items[start:start + params.limit],
        pagination=PaginationInfo(
            page=params.page,
            limit=params.limit,
            total=total,
            total_pages=total_pages,
            has_more=params.page < total_pages,
        ),
    )


def _strip_or_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _normalize_capsule_number(value):
    """胶囊号去空白并转大写，如 " c01" -> "C01"；空串视为未填"""
    value = _strip_or_none(value)
    return value.upper() if isinstance(value, str) else value


# ============== 胶囊 Schemas ==============

class CapsuleCreate(BaseModel):
    number: str = Field(..., min_length=1, max_length=10)
    section: CapsuleSection
    is_available: bool = True
    color: Optional[str] = Field(None, max_length=30)
    purchase_date: Optional[date] = None
    position: Optional[CapsulePosition] = None
    remark: Optional[str] = None

    @field_validator("number", mode="before")
    @classmethod
    def normalize_number(cls, v):
        v = _normalize_capsule_number(v)
        if v is None:
            raise ValueError("胶囊号不能为空")
        return v


class CapsuleUpdate(BaseModel):
    """可修改的胶囊属性；清洁状态只能通过清洁/退房操作变更"""
    section: Optional[CapsuleSection] = None
    is_available: Optional[bool] = None
    color: Optional[str] = Field(None, max_length=30)
    purchase_date: Optional[date] = None
    position: Optional[CapsulePosition] = None
    remark: Optional[str] = None
    model_config = ConfigDict(extra="forbid")


class CapsuleResponse(BaseModel):
    number: str
    section: CapsuleSection
    is_available: bool
    cleaning_status: CleaningStatus
    last_cleaned_at: Optional[datetime] = None
    last_cleaned_by: Optional[str] = None
    color: Optional[str] = None
    purchase_date: Optional[date] = None
    position: Optional[CapsulePosition] = None
    effective_position: CapsulePosition
    remark: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


# ============== 客人 Schemas ==============

class GuestContactFields(BaseModel):
    """客人联系方式与证件信息"""
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, max_length=100)
    gender: Optional[Gender] = None
    nationality: Optional[str] = Field(None, max_length=60)
    age: Optional[int] = Field(None, ge=0, le=120)
    id_number: Optional[str] = Field(None, max_length=50)
    passport_number: Optional[str] = Field(None, max_length=50)
    expected_checkout_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("phone", "email", "nationality", "id_number", "passport_number", "notes",
                     mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _strip_or_none(v)


class GuestCheckIn(GuestContactFields):
    """前台办理入住"""
    capsule_number: str = Field(..., min_length=1, max_length=10)
    name: str = Field(..., min_length=1, max_length=100)
    payment_amount: Decimal = Field(default=Decimal("0"), ge=0)
    payment_method: PaymentMethod
    payment_collector: Optional[str] = Field(None, max_length=100)
    is_paid: bool = False

    @field_validator("capsule_number", mode="before")
    @classmethod
    def normalize_capsule_number(cls, v):
        return _normalize_capsule_number(v)

    @field_validator("name", mode="before")
    @classmethod
    def strip_required(cls, v):
        return v.strip() if isinstance(v, str) else v


class GuestUpdate(GuestContactFields):
    """
    客人信息修改
    入住状态、时间戳和胶囊号不允许通过此途径修改
    """
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    payment_amount: Optional[Decimal] = Field(None, ge=0)
    payment_method: Optional[PaymentMethod] = None
    payment_collector: Optional[str] = Field(None, max_length=100)
    is_paid: Optional[bool] = None
    model_config = ConfigDict(extra="forbid")


class GuestResponse(BaseModel):
    id: str
    name: str
    capsule_number: str
    checkin_time: datetime
    checkout_time: Optional[datetime] = None
    is_checked_in: bool
    expected_checkout_date: Optional[date] = None
    payment_amount: Decimal
    payment_method: PaymentMethod
    payment_collector: str
    is_paid: bool
    phone: Optional[str] = None
    email: Optional[str] = None
    gender: Optional[Gender] = None
    nationality: Optional[str] = None
    age: Optional[int] = None
    id_number: Optional[str] = None
    passport_number: Optional[str] = None
    notes: Optional[str] = None
    checkin_source: CheckinSource
    can_edit_until: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class CheckOutRequest(BaseModel):
    guest_id: str = Field(..., min_length=1)


class CheckOutResponse(BaseModel):
    guest: GuestResponse
    cleaning_flag_updated: bool
    warning: Optional[str] = None


class OccupancyResponse(BaseModel):
    total: int
    occupied: int
    available: int
    occupancy_rate: int
    model_config = ConfigDict(from_attributes=True)


# ============== 自助入住令牌 Schemas ==============

class GuestTokenCreate(BaseModel):
    """生成自助入住链接：指定胶囊或自动分配二选一"""
    capsule_number: Optional[str] = Field(None, max_length=10)
    auto_assign: bool = False
    guest_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, max_length=100)
    expected_checkout_date: Optional[date] = None
    expires_in_hours: Optional[int] = Field(None, ge=1)

    @field_validator("capsule_number", mode="before")
    @classmethod
    def normalize_capsule_number(cls, v):
        return _normalize_capsule_number(v)

    @field_validator("guest_name", "phone", "email", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        return _strip_or_none(v)

    @model_validator(mode="after")
    def check_target(self):
        if self.auto_assign and self.capsule_number:
            raise ValueError("指定胶囊与自动分配不能同时设置")
        if not self.auto_assign and not self.capsule_number:
            raise ValueError("请指定胶囊号或选择自动分配")
        return self


class GuestTokenResponse(BaseModel):
    token: str
    capsule_number: Optional[str] = None
    auto_assign: bool
    guest_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    expected_checkout_date: Optional[date] = None
    expires_at: datetime
    is_used: bool
    used_at: Optional[datetime] = None
    created_by: str
    created_at: datetime
    link: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class SelfCheckIn(GuestContactFields):
    """客人自助填写的信息；未填写的字段使用链接预填值"""
    name: Optional[str] = Field(None, max_length=100)
    model_config = ConfigDict(extra="forbid")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return _strip_or_none(v)


class TokenValidationResponse(BaseModel):
    """面向客人的链接校验结果（不暴露内部状态）"""
    valid: bool = True
    capsule_number: Optional[str] = None
    auto_assign: bool
    guest_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    expected_checkout_date: Optional[date] = None
    expires_at: datetime
    model_config = ConfigDict(from_attributes=True)


class SelfCheckInGuestResponse(GuestResponse):
    can_edit: bool = False


# ============== 维修 Schemas ==============

class ProblemCreate(BaseModel):
    capsule_number: str = Field(..., min_length=1, max_length=10)
    description: str = Field(..., min_length=1)

    @field_validator("capsule_number", mode="before")
    @classmethod
    def normalize_capsule_number(cls, v):
        return _normalize_capsule_number(v)


class ProblemResolve(BaseModel):
    notes: Optional[str] = None


class ProblemResponse(BaseModel):
    id: str
    capsule_number: str
    description: str
    reported_by: str
    reported_at: datetime
    is_resolved: bool
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    notes: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


# ============== 设置 / 通知 Schemas ==============

class SettingUpdate(BaseModel):
    key: str = Field(..., min_length=1, max_length=100)
    value: str
    description: Optional[str] = None


class SettingResponse(BaseModel):
    key: str
    value: str
    description: Optional[str] = None
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class NotificationResponse(BaseModel):
    id: str
    type: NotificationType
    title: str
    message: str
    guest_id: Optional[str] = None
    capsule_number: Optional[str] = None
    is_read: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ============== 认证 Schemas ==============

class LoginRequest(BaseModel):
    username: str
    password: str


class EmployeeResponse(BaseModel):
    id: int
    username: str
    name: str
    role: EmployeeRole
    is_active: bool
    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    employee: EmployeeResponse
