"""
数据表定义 (SQLAlchemy ORM)
只负责持久化；业务层通过 repositories 转换为 hostel.models.entities 中的领域对象
"""
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, Text, Boolean, Numeric,
    Enum as SQLEnum, Index, text
)
from hostel.database import Base
from hostel.models.entities import (
    CapsuleSection, CapsulePosition, CleaningStatus, PaymentMethod, Gender,
    CheckinSource, EmployeeRole, NotificationType
)


class CapsuleRow(Base):
    """胶囊床位表"""
    __tablename__ = "capsules"

    id = Column(Integer, primary_key=True, index=True)
    number = Column(String(10), unique=True, nullable=False)        # 胶囊号
    section = Column(SQLEnum(CapsuleSection), nullable=False)       # 区域
    is_available = Column(Boolean, nullable=False, default=True)    # 是否可用（维修时关闭）
    cleaning_status = Column(SQLEnum(CleaningStatus), nullable=False, default=CleaningStatus.CLEANED)
    last_cleaned_at = Column(DateTime)
    last_cleaned_by = Column(String(100))
    color = Column(String(30))
    purchase_date = Column(Date)
    position = Column(SQLEnum(CapsulePosition))                     # 上/下铺
    remark = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class GuestRow(Base):
    """
    客人表
    同一胶囊最多一条 is_checked_in 记录，由部分唯一索引保证
    """
    __tablename__ = "guests"
    __table_args__ = (
        Index(
            "uq_guests_active_capsule", "capsule_number",
            unique=True,
            sqlite_where=text("is_checked_in = 1"),
            postgresql_where=text("is_checked_in"),
        ),
    )

    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    capsule_number = Column(String(10), nullable=False, index=True)
    checkin_time = Column(DateTime, nullable=False)
    checkout_time = Column(DateTime)
    is_checked_in = Column(Boolean, nullable=False, default=True, index=True)
    expected_checkout_date = Column(Date)
    payment_amount = Column(Numeric(10, 2), default=0)
    payment_method = Column(SQLEnum(PaymentMethod), nullable=False)
    payment_collector = Column(String(100), nullable=False)
    is_paid = Column(Boolean, default=False)
    phone = Column(String(30))
    email = Column(String(100))
    gender = Column(SQLEnum(Gender))
    nationality = Column(String(60))
    age = Column(Integer)
    id_number = Column(String(50))                                  # IC 号码
    passport_number = Column(String(50))
    notes = Column(Text)
    checkin_source = Column(SQLEnum(CheckinSource), default=CheckinSource.STAFF)
    self_checkin_token = Column(String(64), index=True)
    can_edit_until = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class GuestTokenRow(Base):
    """自助入住令牌表"""
    __tablename__ = "guest_tokens"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(64), unique=True, nullable=False)
    capsule_number = Column(String(10))
    auto_assign = Column(Boolean, nullable=False, default=False)
    guest_name = Column(String(100))
    phone = Column(String(30))
    email = Column(String(100))
    expected_checkout_date = Column(Date)
    is_used = Column(Boolean, nullable=False, default=False)
    used_at = Column(DateTime)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_by = Column(String(100), nullable=False)
    created_at = Column(DateTime, nullable=False)


class CapsuleProblemRow(Base):
    """胶囊维修问题表"""
    __tablename__ = "capsule_problems"

    id = Column(String(36), primary_key=True)
    capsule_number = Column(String(10), nullable=False, index=True)
    description = Column(Text, nullable=False)
    reported_by = Column(String(100), nullable=False)
    reported_at = Column(DateTime, nullable=False)
    is_resolved = Column(Boolean, nullable=False, default=False)
    resolved_by = Column(String(100))
    resolved_at = Column(DateTime)
    notes = Column(Text)


class AppSettingRow(Base):
    """系统设置表"""
    __tablename__ = "app_settings"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    description = Column(Text)
    updated_by = Column(String(100))
    updated_at = Column(DateTime)


class AdminNotificationRow(Base):
    """管理员通知表"""
    __tablename__ = "admin_notifications"

    id = Column(String(36), primary_key=True)
    type = Column(SQLEnum(NotificationType), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    guest_id = Column(String(36))
    capsule_number = Column(String(10))
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False)


class Employee(Base):
    """
    员工账号
    仅用于登录和审计字段（收款人、清洁人、报修人）
    """
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=False)
    role = Column(SQLEnum(EmployeeRole), nullable=False, default=EmployeeRole.STAFF)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
