"""
入住生命周期编排
协调胶囊登记簿、客人台账与自助入住链接，保证跨组件规则成立：
- 同一胶囊同一时刻最多一位在住客人
- 退房先写客人一侧，再尽力标记胶囊待清洁
"""
import logging
from typing import Callable, Union

from hostel.clock import Clock, SystemClock
from hostel.models.entities import Capsule, CheckoutResult, Guest
from hostel.models.events import (
    EventType, GuestCheckedInData, GuestCheckedOutData, CleaningReviewRequiredData
)
from hostel.models.schemas import GuestCheckIn, SelfCheckIn
from hostel.repositories.base import HostelRepository
from hostel.services.capsule_service import CapsuleService
from hostel.services.event_bus import event_bus, Event
from hostel.services.guest_service import GuestService
from hostel.services.token_service import TokenService

logger = logging.getLogger(__name__)

CLEANING_REVIEW_WARNING = "客人已退房，但胶囊清洁状态更新失败，请人工确认该胶囊的清洁状态"


class LifecycleService:
    """入住生命周期编排服务"""

    def __init__(self, repository: HostelRepository, clock: Clock = None,
                 event_publisher: Callable[[Event], None] = None):
        self.repo = repository
        self.clock = clock or SystemClock()
        self._publish_event = event_publisher or event_bus.publish
        self.capsule_service = CapsuleService(repository, self.clock, self._publish_event)
        self.guest_service = GuestService(repository, self.clock, self._publish_event)
        self.token_service = TokenService(
            repository, self.clock, self._publish_event, guest_service=self.guest_service
        )

    def check_in(self, data: Union[GuestCheckIn, dict], actor: str) -> Guest:
        """前台入住：可用性复核与写入在同一原子单元内"""
        return self.guest_service.check_in(data, actor)

    def check_out(self, guest_id: str, actor: str = "") -> CheckoutResult:
        """
        退房
        1. 客人一侧比较并交换写入（失败则整体失败）
        2. 胶囊标记待清洁，单独写入；失败只记录并返回降级结果，不回滚客人退房
        """
        guest = self.guest_service.check_out(guest_id)

        result = CheckoutResult(guest=guest)
        try:
            result.capsule = self.capsule_service.mark_needs_cleaning(guest.capsule_number)
        except Exception as e:
            logger.error(
                f"Guest {guest.id} checked out but capsule {guest.capsule_number} "
                f"cleaning flag update failed: {e}",
                exc_info=True
            )
            result.cleaning_flag_updated = False
            result.warning = CLEANING_REVIEW_WARNING
            self._publish_event(Event(
                event_type=EventType.CAPSULE_CLEANING_REVIEW_REQUIRED,
                timestamp=self.clock.now(),
                data=CleaningReviewRequiredData(
                    capsule_number=guest.capsule_number,
                    guest_id=guest.id,
                    guest_name=guest.name,
                    error=str(e)
                ).to_dict(),
                source="lifecycle_service"
            ))

        self._publish_event(Event(
            event_type=EventType.GUEST_CHECKED_OUT,
            timestamp=self.clock.now(),
            data=GuestCheckedOutData(
                guest_id=guest.id,
                guest_name=guest.name,
                capsule_number=guest.capsule_number,
                checkout_time=guest.checkout_time,
                cleaning_flag_updated=result.cleaning_flag_updated,
                operator=actor
            ).to_dict(),
            source="lifecycle_service"
        ))
        return result

    def self_check_in(self, token: str, data: Union[SelfCheckIn, dict]) -> Guest:
        """自助入住：兑换令牌，胶囊可用性复核与前台入住相同"""
        guest = self.token_service.redeem(token, data)

        self._publish_event(Event(
            event_type=EventType.GUEST_SELF_CHECKED_IN,
            timestamp=self.clock.now(),
            data=GuestCheckedInData(
                guest_id=guest.id,
                guest_name=guest.name,
                capsule_number=guest.capsule_number,
                checkin_time=guest.checkin_time,
                source=guest.checkin_source.value
            ).to_dict(),
            source="lifecycle_service"
        ))
        return guest

    def mark_cleaned(self, number: str, cleaned_by: str) -> Capsule:
        return self.capsule_service.mark_cleaned(number, cleaned_by)
