"""
客人服务 - 客人台账
管理客人记录：入住写入、退房写入、信息修改与各类列表
"""
import logging
import uuid
from datetime import datetime
from typing import List, Optional, Callable, Union

from hostel.clock import Clock, SystemClock
from hostel.models.entities import Guest, CheckinSource
from hostel.models.events import EventType, GuestCheckedInData
from hostel.models.schemas import (
    GuestCheckIn, GuestUpdate, PaginationParams, Page, paginate
)
from hostel.repositories.base import HostelRepository
from hostel.services.errors import (
    CapsuleUnavailable, CapsuleOccupiedError, ConflictError, GuestNotFound,
    ValidationError, validate_payload
)
from hostel.services.event_bus import event_bus, Event

logger = logging.getLogger(__name__)

# 修改时不允许置空的字段
_REQUIRED_ON_UPDATE = ("name", "payment_amount", "payment_method", "payment_collector", "is_paid")


class GuestService:
    """客人服务"""

    def __init__(self, repository: HostelRepository, clock: Clock = None,
                 event_publisher: Callable[[Event], None] = None):
        self.repo = repository
        self.clock = clock or SystemClock()
        self._publish_event = event_publisher or event_bus.publish

    # ============== 查询 ==============

    def get_guest(self, guest_id: str) -> Guest:
        guest = self.repo.get_guest(guest_id)
        if not guest:
            raise GuestNotFound(guest_id)
        return guest

    def get_guests_by_capsule(self, capsule_number: str) -> List[Guest]:
        """某个胶囊的全部入住记录（含历史）"""
        return self.repo.find_guests(capsule_number=capsule_number)

    def list_checked_in(self, pagination: Optional[PaginationParams] = None) -> Page:
        return paginate(self.repo.find_guests(is_checked_in=True), pagination)

    def list_history(self, pagination: Optional[PaginationParams] = None) -> Page:
        """已退房记录，最近退房在前"""
        guests = self.repo.find_guests(is_checked_in=False)
        guests.sort(key=lambda g: g.checkout_time or g.checkin_time, reverse=True)
        return paginate(guests, pagination)

    def list_expected_checkout_today(self) -> List[Guest]:
        """预计今天退房的在住客人（按旅舍本地日期比较）"""
        return self.repo.find_guests(is_checked_in=True, expected_checkout_date=self.clock.today())

    def list_overdue(self) -> List[Guest]:
        """预计退房日已过但仍在住的客人"""
        today = self.clock.today()
        return [
            g for g in self.repo.find_guests(is_checked_in=True)
            if g.expected_checkout_date is not None and g.expected_checkout_date < today
        ]

    # ============== 入住 / 退房 ==============

    def check_in(self, data: Union[GuestCheckIn, dict], actor: str) -> Guest:
        """
        前台办理入住
        业务规则：
        - 胶囊必须在调用时处于可入住状态（重新检查，不信任调用方）
        - 收款人未填写时默认为当前操作员
        """
        guest = self.insert_checked_in(data, actor)

        self._publish_event(Event(
            event_type=EventType.GUEST_CHECKED_IN,
            timestamp=self.clock.now(),
            data=GuestCheckedInData(
                guest_id=guest.id,
                guest_name=guest.name,
                capsule_number=guest.capsule_number,
                checkin_time=guest.checkin_time,
                source=guest.checkin_source.value,
                operator=actor
            ).to_dict(),
            source="guest_service"
        ))
        return guest

    def insert_checked_in(self, data: Union[GuestCheckIn, dict], actor: str,
                          source: CheckinSource = CheckinSource.STAFF,
                          self_checkin_token: Optional[str] = None,
                          can_edit_until: Optional[datetime] = None) -> Guest:
        """在一个原子单元内完成可用性检查与写入，不发布事件"""
        data = validate_payload(GuestCheckIn, data)
        collector = data.payment_collector or actor
        if not collector:
            raise ValidationError("收款人不能为空")

        with self.repo.atomic():
            capsule = self.repo.lock_capsule(data.capsule_number)
            if capsule is None or not capsule.is_available or not capsule.is_cleaned:
                raise CapsuleUnavailable(data.capsule_number)

            guest = Guest(
                id=str(uuid.uuid4()),
                checkin_time=self.clock.now(),
                payment_collector=collector,
                checkin_source=source,
                self_checkin_token=self_checkin_token,
                can_edit_until=can_edit_until,
                **data.model_dump(exclude={"payment_collector"})
            )
            try:
                guest = self.repo.add_checked_in_guest(guest)
            except CapsuleOccupiedError as e:
                raise CapsuleUnavailable(e.capsule_number, f"胶囊 {e.capsule_number} 已有客人入住")

        logger.info(f"Guest {guest.id} checked in to {guest.capsule_number} ({source.value})")
        return guest

    def check_out(self, guest_id: str) -> Guest:
        """
        退房（只写客人一侧）
        已退房或不存在的客人一律视为不存在，避免重复触发清洁标记
        """
        with self.repo.atomic():
            guest = self.repo.get_guest(guest_id)
            if guest is None or not guest.is_checked_in:
                raise GuestNotFound(guest_id, "客人不存在或已退房")
            checked_out = self.repo.check_out_guest(guest_id, self.clock.now())
            if checked_out is None:
                raise ConflictError("该客人已被其他操作退房，请刷新后重试")

        logger.info(f"Guest {guest_id} checked out of {checked_out.capsule_number}")
        return checked_out

    # ============== 修改 ==============

    def update(self, guest_id: str, data: Union[GuestUpdate, dict]) -> Guest:
        """修改联系方式、证件、支付和备注；入住状态与时间戳不可修改"""
        data = validate_payload(GuestUpdate, data)
        changes = data.model_dump(exclude_unset=True)
        cleared = [key for key in _REQUIRED_ON_UPDATE if key in changes and changes[key] is None]
        if cleared:
            raise ValidationError(f"字段不能为空: {', '.join(cleared)}")

        with self.repo.atomic():
            guest = self.get_guest(guest_id)
            for key, value in changes.items():
                setattr(guest, key, value)
            return self.repo.save_guest(guest)
