"""
自助入住链接服务 - 令牌签发
状态：有效（未使用、未过期） -> 已使用（兑换） | 已过期（时间流逝或被清理）
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, List, Optional, Sequence, Tuple, Union

from hostel.clock import Clock, SystemClock
from hostel.config import settings
from hostel.models.entities import (
    Capsule, CapsulePosition, CapsuleSection, CheckinSource, Gender, Guest,
    GuestToken, PaymentMethod, capsule_sort_key
)
from hostel.models.events import (
    EventType, TokenIssuedData, TokenRedeemedData, TokensSweptData
)
from hostel.models.schemas import (
    GuestTokenCreate, GuestUpdate, PaginationParams, Page, SelfCheckIn, paginate
)
from hostel.repositories.base import HostelRepository
from hostel.services.capsule_service import CapsuleService
from hostel.services.errors import (
    CapsuleUnavailable, EditWindowExpired, GuestNotFound, NotFoundError,
    TokenInvalid, ValidationError, validate_payload
)
from hostel.services.event_bus import event_bus, Event
from hostel.services.guest_service import GuestService
from hostel.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

CapsulePredicate = Callable[[Capsule], bool]


def in_zone(section: Optional[CapsuleSection] = None,
            position: Optional[CapsulePosition] = None) -> CapsulePredicate:
    """按区域 / 上下铺筛选胶囊"""
    def predicate(capsule: Capsule) -> bool:
        if section is not None and capsule.section != section:
            return False
        if position is not None and capsule.effective_position != position:
            return False
        return True
    return predicate


@dataclass(frozen=True)
class AssignmentRule:
    """自动分配规则：applies 判断客人是否适用，preferences 按优先级排列"""
    applies: Callable[[Optional[Gender]], bool]
    preferences: Tuple[CapsulePredicate, ...]


ASSIGNMENT_RULES: Tuple[AssignmentRule, ...] = (
    AssignmentRule(
        applies=lambda gender: gender == Gender.FEMALE,
        preferences=(in_zone(CapsuleSection.BACK, CapsulePosition.BOTTOM), in_zone(CapsuleSection.BACK)),
    ),
    AssignmentRule(
        applies=lambda gender: gender == Gender.MALE,
        preferences=(in_zone(CapsuleSection.FRONT, CapsulePosition.BOTTOM), in_zone(CapsuleSection.FRONT)),
    ),
)

# 所有规则之后的兜底顺序：先下铺，再任意
FALLBACK_PREFERENCES: Tuple[CapsulePredicate, ...] = (
    in_zone(position=CapsulePosition.BOTTOM),
    in_zone(),
)


def rank_capsules(capsules: Sequence[Capsule], gender: Optional[Gender],
                  rules: Sequence[AssignmentRule] = ASSIGNMENT_RULES) -> List[Capsule]:
    """
    按分配偏好排序候选胶囊

    取第一条适用规则的偏好，再追加兜底偏好；
    每个胶囊按命中的第一个偏好分级，同级按胶囊号自然顺序
    """
    preferences: Tuple[CapsulePredicate, ...] = ()
    for rule in rules:
        if rule.applies(gender):
            preferences = rule.preferences
            break
    preferences = preferences + FALLBACK_PREFERENCES

    def rank(capsule: Capsule):
        tier = next((i for i, matches in enumerate(preferences) if matches(capsule)), len(preferences))
        return tier, capsule_sort_key(capsule.number)

    return sorted(capsules, key=rank)


class TokenService:
    """自助入住链接服务"""

    def __init__(self, repository: HostelRepository, clock: Clock = None,
                 event_publisher: Callable[[Event], None] = None,
                 guest_service: GuestService = None,
                 settings_service: SettingsService = None):
        self.repo = repository
        self.clock = clock or SystemClock()
        self._publish_event = event_publisher or event_bus.publish
        self.capsule_service = CapsuleService(repository, self.clock, self._publish_event)
        self.guest_service = guest_service or GuestService(repository, self.clock, self._publish_event)
        self.settings_service = settings_service or SettingsService(repository, self.clock)

    # ============== 签发 ==============

    def issue(self, data: Union[GuestTokenCreate, dict], created_by: str) -> GuestToken:
        """
        生成自助入住链接
        - 指定胶囊时，胶囊必须存在且此刻可入住
        - 自动分配时不预留胶囊，兑换时才选择
        """
        data = validate_payload(GuestTokenCreate, data)
        hours = data.expires_in_hours or self.settings_service.get_guest_token_expiration_hours()
        if hours > settings.GUEST_TOKEN_MAX_HOURS:
            raise ValidationError(f"链接有效期不能超过 {settings.GUEST_TOKEN_MAX_HOURS} 小时")

        now = self.clock.now()
        with self.repo.atomic():
            if data.capsule_number:
                self.capsule_service.get_capsule(data.capsule_number)
                if not self.capsule_service.is_available(data.capsule_number):
                    raise CapsuleUnavailable(data.capsule_number)

            record = self.repo.add_token(GuestToken(
                token=str(uuid.uuid4()),
                expires_at=now + timedelta(hours=hours),
                created_by=created_by,
                created_at=now,
                capsule_number=data.capsule_number,
                auto_assign=data.auto_assign,
                guest_name=data.guest_name,
                phone=data.phone,
                email=data.email,
                expected_checkout_date=data.expected_checkout_date,
            ))

        logger.info(f"Guest token issued by {created_by}, expires at {record.expires_at}")
        self._publish_event(Event(
            event_type=EventType.TOKEN_ISSUED,
            timestamp=now,
            data=TokenIssuedData(
                token=record.token,
                capsule_number=record.capsule_number,
                auto_assign=record.auto_assign,
                expires_at=record.expires_at,
                created_by=created_by
            ).to_dict(),
            source="token_service"
        ))
        return record

    # ============== 校验 / 兑换 ==============

    def validate(self, token: str) -> GuestToken:
        """令牌未使用且未过期时返回记录，否则抛出 TokenInvalid（对外不区分原因）"""
        record = self.repo.get_token(token)
        if record is None:
            logger.info("Guest token rejected: not found")
            raise TokenInvalid()
        if record.is_used:
            logger.info(f"Guest token rejected: already used at {record.used_at}")
            raise TokenInvalid()
        if record.expires_at <= self.clock.now():
            logger.info(f"Guest token rejected: expired at {record.expires_at}")
            raise TokenInvalid()
        return record

    def redeem(self, token: str, submitted: Union[SelfCheckIn, dict]) -> Guest:
        """
        兑换令牌完成入住
        业务规则：
        - 在原子单元内重新校验令牌，并先以比较并交换占用令牌
        - 自动分配时按 rank_capsules 选择胶囊
        - 客人提交的字段覆盖链接预填值
        - 入住失败时原子单元回滚，令牌保持未使用可重试
        """
        submitted = validate_payload(SelfCheckIn, submitted)
        now = self.clock.now()

        with self.repo.atomic():
            record = self.validate(token)
            fields = self._merge_prefill(record, submitted)

            if not self.repo.mark_token_used(token, now):
                logger.warning("Guest token lost redemption race")
                raise TokenInvalid()

            capsule_number = record.capsule_number
            if record.auto_assign:
                capsule_number = self._auto_assign(fields.get("gender"))

            guest = self.guest_service.insert_checked_in(
                {
                    **fields,
                    "capsule_number": capsule_number,
                    "payment_method": PaymentMethod.CASH,
                    "payment_amount": "0",
                    "is_paid": False,
                    "payment_collector": record.created_by,
                },
                actor=record.created_by,
                source=CheckinSource.SELF,
                self_checkin_token=token,
                can_edit_until=now + timedelta(hours=settings.SELF_CHECKIN_EDIT_WINDOW_HOURS),
            )

        self._publish_event(Event(
            event_type=EventType.TOKEN_REDEEMED,
            timestamp=now,
            data=TokenRedeemedData(
                token=token,
                guest_id=guest.id,
                guest_name=guest.name,
                capsule_number=guest.capsule_number,
                auto_assigned=record.auto_assign
            ).to_dict(),
            source="token_service"
        ))
        return guest

    def _merge_prefill(self, record: GuestToken, submitted: SelfCheckIn) -> dict:
        fields = {
            "name": record.guest_name,
            "phone": record.phone,
            "email": record.email,
            "expected_checkout_date": record.expected_checkout_date,
        }
        fields.update({k: v for k, v in submitted.model_dump(exclude_unset=True).items() if v is not None})
        if not fields.get("name"):
            raise ValidationError("请填写姓名", details=[{"field": "name", "message": "姓名不能为空"}])
        return fields

    def _auto_assign(self, gender: Optional[Gender]) -> str:
        ranked = rank_capsules(self.capsule_service.get_available_capsules(), gender)
        if not ranked:
            raise CapsuleUnavailable("", "暂无可分配的胶囊，请联系前台")
        logger.info(f"Auto-assigned capsule {ranked[0].number} for gender {gender}")
        return ranked[0].number

    # ============== 管理 ==============

    def list_active(self, pagination: Optional[PaginationParams] = None) -> Page:
        now = self.clock.now()
        return paginate([t for t in self.repo.list_tokens() if t.is_active(now)], pagination)

    def revoke(self, token: str) -> None:
        """作废链接（直接删除）"""
        if not self.repo.delete_token(token):
            raise NotFoundError("链接不存在")
        logger.info("Guest token revoked")

    def sweep_expired(self) -> int:
        """删除所有 expires_at <= now 的令牌；可重复、并发执行"""
        now = self.clock.now()
        with self.repo.atomic():
            deleted = self.repo.delete_expired_tokens(now)
        if deleted:
            logger.info(f"Swept {deleted} expired guest tokens")
            self._publish_event(Event(
                event_type=EventType.TOKENS_SWEPT,
                timestamp=now,
                data=TokensSweptData(deleted_count=deleted).to_dict(),
                source="token_service"
            ))
        return deleted

    # ============== 自助入住后查看 / 修改 ==============

    def get_guest_for_token(self, token: str) -> Guest:
        guests = self.repo.find_guests(self_checkin_token=token)
        if not guests:
            raise GuestNotFound(token)
        return guests[-1]

    def can_edit(self, guest: Guest) -> bool:
        return guest.can_edit_until is not None and self.clock.now() < guest.can_edit_until

    def edit_self_check_in(self, token: str, data: Union[SelfCheckIn, dict]) -> Guest:
        """自助入住后修改时限内，客人可修改自己填写的信息"""
        data = validate_payload(SelfCheckIn, data)
        guest = self.get_guest_for_token(token)
        if not self.can_edit(guest):
            raise EditWindowExpired()
        changes = data.model_dump(exclude_unset=True)
        if changes.get("name", "") is None:
            del changes["name"]
        return self.guest_service.update(guest.id, GuestUpdate(**changes))
