"""
胶囊服务 - 胶囊登记簿
管理胶囊库存、可用标记与清洁状态
"""
import logging
from typing import List, Optional, Callable, Union

from hostel.clock import Clock, SystemClock
from hostel.models.entities import Capsule, CapsuleSection, CleaningStatus
from hostel.models.events import EventType, CapsuleCleaningChangedData
from hostel.models.schemas import CapsuleCreate, CapsuleUpdate
from hostel.repositories.base import HostelRepository
from hostel.services.errors import (
    CapsuleNotFound, ConflictError, ValidationError, validate_payload
)
from hostel.services.event_bus import event_bus, Event

logger = logging.getLogger(__name__)


class CapsuleService:
    """胶囊服务"""

    def __init__(self, repository: HostelRepository, clock: Clock = None,
                 event_publisher: Callable[[Event], None] = None):
        self.repo = repository
        self.clock = clock or SystemClock()
        self._publish_event = event_publisher or event_bus.publish

    # ============== 查询 ==============

    def get_capsule(self, number: str) -> Capsule:
        capsule = self.repo.get_capsule(number)
        if not capsule:
            raise CapsuleNotFound(number)
        return capsule

    def list_capsules(self, section: Optional[CapsuleSection] = None,
                      cleaning_status: Optional[CleaningStatus] = None) -> List[Capsule]:
        return self.repo.list_capsules(section=section, cleaning_status=cleaning_status)

    def get_available_capsules(self) -> List[Capsule]:
        """
        可入住胶囊
        条件：is_available、已清洁、且没有在住客人；按胶囊号自然顺序
        """
        with self.repo.atomic():
            occupied = self.repo.occupied_capsule_numbers()
            capsules = self.repo.list_capsules(cleaning_status=CleaningStatus.CLEANED)
        return [c for c in capsules if c.is_available and c.number not in occupied]

    def is_available(self, number: str) -> bool:
        """单个胶囊当前是否可入住"""
        with self.repo.atomic():
            capsule = self.repo.get_capsule(number)
            if capsule is None or not capsule.is_available or not capsule.is_cleaned:
                return False
            return number not in self.repo.occupied_capsule_numbers()

    def get_uncleaned_capsules(self) -> List[Capsule]:
        """待清洁且当前无人入住的胶囊"""
        with self.repo.atomic():
            occupied = self.repo.occupied_capsule_numbers()
            capsules = self.repo.list_capsules(cleaning_status=CleaningStatus.TO_BE_CLEANED)
        return [c for c in capsules if c.number not in occupied]

    # ============== 维护 ==============

    def create_capsule(self, data: Union[CapsuleCreate, dict]) -> Capsule:
        data = validate_payload(CapsuleCreate, data)
        with self.repo.atomic():
            if self.repo.get_capsule(data.number):
                raise ValidationError(f"胶囊号 {data.number} 已存在")
            capsule = Capsule(**data.model_dump())
            capsule = self.repo.add_capsule(capsule)
        logger.info(f"Capsule {capsule.number} created in section {capsule.section.value}")
        return capsule

    def update_capsule(self, number: str, data: Union[CapsuleUpdate, dict]) -> Capsule:
        """修改描述性字段与可用标记"""
        data = validate_payload(CapsuleUpdate, data)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("section", "") is None or changes.get("is_available", "") is None:
            raise ValidationError("区域和可用标记不能为空")
        with self.repo.atomic():
            capsule = self.get_capsule(number)
            for key, value in changes.items():
                setattr(capsule, key, value)
            return self.repo.save_capsule(capsule)

    def delete_capsule(self, number: str) -> None:
        with self.repo.atomic():
            self.get_capsule(number)
            if number in self.repo.occupied_capsule_numbers():
                raise ConflictError(f"胶囊 {number} 有在住客人，无法删除")
            self.repo.delete_capsule(number)
        logger.info(f"Capsule {number} deleted")

    # ============== 清洁状态 ==============

    def mark_cleaned(self, number: str, cleaned_by: str) -> Capsule:
        """标记已清洁并记录清洁时间与清洁人"""
        with self.repo.atomic():
            capsule = self.get_capsule(number)
            old_status = capsule.cleaning_status
            capsule.cleaning_status = CleaningStatus.CLEANED
            capsule.last_cleaned_at = self.clock.now()
            capsule.last_cleaned_by = cleaned_by
            capsule = self.repo.save_capsule(capsule)

        self._publish_cleaning_changed(capsule, old_status, cleaned_by, "cleaned")
        return capsule

    def mark_needs_cleaning(self, number: str, reason: str = "checkout") -> Capsule:
        """标记待清洁（退房后调用），清除清洁记录"""
        with self.repo.atomic():
            capsule = self.get_capsule(number)
            old_status = capsule.cleaning_status
            capsule.cleaning_status = CleaningStatus.TO_BE_CLEANED
            capsule.last_cleaned_at = None
            capsule.last_cleaned_by = None
            capsule = self.repo.save_capsule(capsule)

        self._publish_cleaning_changed(capsule, old_status, None, reason)
        return capsule

    def mark_all_cleaned(self, cleaned_by: str) -> List[Capsule]:
        """批量标记所有待清洁胶囊为已清洁"""
        now = self.clock.now()
        updated = []
        with self.repo.atomic():
            for capsule in self.repo.list_capsules(cleaning_status=CleaningStatus.TO_BE_CLEANED):
                capsule.cleaning_status = CleaningStatus.CLEANED
                capsule.last_cleaned_at = now
                capsule.last_cleaned_by = cleaned_by
                updated.append(self.repo.save_capsule(capsule))

        for capsule in updated:
            self._publish_cleaning_changed(capsule, CleaningStatus.TO_BE_CLEANED, cleaned_by, "bulk_cleaned")
        logger.info(f"{len(updated)} capsules marked cleaned by {cleaned_by}")
        return updated

    def _publish_cleaning_changed(self, capsule: Capsule, old_status: CleaningStatus,
                                  changed_by: Optional[str], reason: str) -> None:
        if old_status == capsule.cleaning_status:
            return
        self._publish_event(Event(
            event_type=EventType.CAPSULE_CLEANING_CHANGED,
            timestamp=self.clock.now(),
            data=CapsuleCleaningChangedData(
                capsule_number=capsule.number,
                old_status=old_status.value,
                new_status=capsule.cleaning_status.value,
                changed_by=changed_by,
                reason=reason
            ).to_dict(),
            source="capsule_service"
        ))
