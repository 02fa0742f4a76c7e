"""
SQLAlchemy 仓储
一个仓储实例绑定一个 Session；atomic() 对应一个数据库事务
"""
import logging
from contextlib import contextmanager
from dataclasses import fields
from datetime import datetime, date
from typing import List, Optional, Set, Type, TypeVar

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hostel.models.entities import (
    Capsule, Guest, GuestToken, CapsuleProblem, AppSetting, AdminNotification,
    CapsuleSection, CleaningStatus, capsule_sort_key
)
from hostel.models.tables import (
    CapsuleRow, GuestRow, GuestTokenRow, CapsuleProblemRow, AppSettingRow,
    AdminNotificationRow
)
from hostel.repositories.base import HostelRepository
from hostel.services.errors import CapsuleOccupiedError

logger = logging.getLogger(__name__)

E = TypeVar("E")


def _to_entity(entity_cls: Type[E], row) -> Optional[E]:
    """表行 -> 领域对象"""
    if row is None:
        return None
    return entity_cls(**{f.name: getattr(row, f.name) for f in fields(entity_cls)})


def _copy_to_row(entity, row) -> None:
    """领域对象 -> 表行（按领域对象字段逐个赋值）"""
    for f in fields(entity):
        setattr(row, f.name, getattr(entity, f.name))


class SqlAlchemyRepository(HostelRepository):
    """SQLAlchemy 仓储"""

    def __init__(self, db: Session):
        self.db = db
        self._depth = 0

    @contextmanager
    def atomic(self):
        """可重入事务：只有最外层提交或回滚"""
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                self.db.rollback()
            raise
        else:
            self._depth -= 1
            if self._depth == 0:
                self.db.commit()

    def _persist(self) -> None:
        """事务内只 flush，事务外直接提交"""
        if self._depth:
            self.db.flush()
        else:
            self.db.commit()

    # ============== 胶囊 ==============

    def _capsule_row(self, number: str, for_update: bool = False) -> Optional[CapsuleRow]:
        stmt = select(CapsuleRow).where(CapsuleRow.number == number)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def add_capsule(self, capsule: Capsule) -> Capsule:
        row = CapsuleRow()
        _copy_to_row(capsule, row)
        self.db.add(row)
        self._persist()
        return _to_entity(Capsule, row)

    def get_capsule(self, number: str) -> Optional[Capsule]:
        return _to_entity(Capsule, self._capsule_row(number))

    def lock_capsule(self, number: str) -> Optional[Capsule]:
        # SQLite 忽略 FOR UPDATE，依靠部分唯一索引兜底
        return _to_entity(Capsule, self._capsule_row(number, for_update=True))

    def list_capsules(self, section: Optional[CapsuleSection] = None,
                      cleaning_status: Optional[CleaningStatus] = None) -> List[Capsule]:
        stmt = select(CapsuleRow)
        if section is not None:
            stmt = stmt.where(CapsuleRow.section == section)
        if cleaning_status is not None:
            stmt = stmt.where(CapsuleRow.cleaning_status == cleaning_status)
        rows = self.db.execute(stmt).scalars().all()
        capsules = [_to_entity(Capsule, r) for r in rows]
        return sorted(capsules, key=lambda c: capsule_sort_key(c.number))

    def count_capsules(self) -> int:
        return self.db.execute(select(func.count()).select_from(CapsuleRow)).scalar_one()

    def save_capsule(self, capsule: Capsule) -> Capsule:
        row = self._capsule_row(capsule.number)
        if row is None:
            raise KeyError(capsule.number)
        _copy_to_row(capsule, row)
        self._persist()
        return _to_entity(Capsule, row)

    def delete_capsule(self, number: str) -> bool:
        result = self.db.execute(delete(CapsuleRow).where(CapsuleRow.number == number))
        self._persist()
        return result.rowcount > 0

    # ============== 客人 ==============

    def add_checked_in_guest(self, guest: Guest) -> Guest:
        active = self.db.execute(
            select(GuestRow.id).where(
                GuestRow.capsule_number == guest.capsule_number,
                GuestRow.is_checked_in == True  # noqa: E712
            )
        ).first()
        if active is not None:
            raise CapsuleOccupiedError(guest.capsule_number)

        row = GuestRow()
        _copy_to_row(guest, row)
        row.is_checked_in = True
        self.db.add(row)
        try:
            self._persist()
        except IntegrityError as e:
            # 并发入住同一胶囊：部分唯一索引冲突
            self.db.rollback()
            logger.warning(f"Concurrent check-in rejected for capsule {guest.capsule_number}: {e.orig}")
            raise CapsuleOccupiedError(guest.capsule_number) from e
        return _to_entity(Guest, row)

    def get_guest(self, guest_id: str) -> Optional[Guest]:
        return _to_entity(Guest, self.db.get(GuestRow, guest_id))

    def find_guests(self, is_checked_in: Optional[bool] = None,
                    capsule_number: Optional[str] = None,
                    expected_checkout_date: Optional[date] = None,
                    self_checkin_token: Optional[str] = None) -> List[Guest]:
        stmt = select(GuestRow)
        if is_checked_in is not None:
            stmt = stmt.where(GuestRow.is_checked_in == is_checked_in)
        if capsule_number is not None:
            stmt = stmt.where(GuestRow.capsule_number == capsule_number)
        if expected_checkout_date is not None:
            stmt = stmt.where(GuestRow.expected_checkout_date == expected_checkout_date)
        if self_checkin_token is not None:
            stmt = stmt.where(GuestRow.self_checkin_token == self_checkin_token)
        rows = self.db.execute(stmt.order_by(GuestRow.checkin_time)).scalars().all()
        return [_to_entity(Guest, r) for r in rows]

    def count_checked_in_guests(self) -> int:
        return self.db.execute(
            select(func.count()).select_from(GuestRow).where(GuestRow.is_checked_in == True)  # noqa: E712
        ).scalar_one()

    def occupied_capsule_numbers(self) -> Set[str]:
        rows = self.db.execute(
            select(GuestRow.capsule_number).where(GuestRow.is_checked_in == True)  # noqa: E712
        ).scalars().all()
        return set(rows)

    def save_guest(self, guest: Guest) -> Guest:
        row = self.db.get(GuestRow, guest.id)
        if row is None:
            raise KeyError(guest.id)
        protected = (row.is_checked_in, row.checkout_time, row.capsule_number)
        _copy_to_row(guest, row)
        # 入住状态只能通过 add_checked_in_guest / check_out_guest 变更
        row.is_checked_in, row.checkout_time, row.capsule_number = protected
        self._persist()
        return _to_entity(Guest, row)

    def check_out_guest(self, guest_id: str, checkout_time: datetime) -> Optional[Guest]:
        result = self.db.execute(
            update(GuestRow)
            .where(GuestRow.id == guest_id, GuestRow.is_checked_in == True)  # noqa: E712
            .values(is_checked_in=False, checkout_time=checkout_time)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            return None
        self._persist()
        row = self.db.get(GuestRow, guest_id)
        self.db.refresh(row)
        return _to_entity(Guest, row)

    # ============== 自助入住令牌 ==============

    def _token_row(self, token: str) -> Optional[GuestTokenRow]:
        return self.db.execute(
            select(GuestTokenRow).where(GuestTokenRow.token == token)
        ).scalar_one_or_none()

    def add_token(self, token: GuestToken) -> GuestToken:
        row = GuestTokenRow()
        _copy_to_row(token, row)
        self.db.add(row)
        self._persist()
        return _to_entity(GuestToken, row)

    def get_token(self, token: str) -> Optional[GuestToken]:
        return _to_entity(GuestToken, self._token_row(token))

    def list_tokens(self) -> List[GuestToken]:
        rows = self.db.execute(
            select(GuestTokenRow).order_by(GuestTokenRow.created_at)
        ).scalars().all()
        return [_to_entity(GuestToken, r) for r in rows]

    def mark_token_used(self, token: str, used_at: datetime) -> bool:
        result = self.db.execute(
            update(GuestTokenRow)
            .where(GuestTokenRow.token == token, GuestTokenRow.is_used == False)  # noqa: E712
            .values(is_used=True, used_at=used_at)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            return False
        self._persist()
        return True

    def delete_token(self, token: str) -> bool:
        result = self.db.execute(delete(GuestTokenRow).where(GuestTokenRow.token == token))
        self._persist()
        return result.rowcount > 0

    def delete_expired_tokens(self, now: datetime) -> int:
        result = self.db.execute(delete(GuestTokenRow).where(GuestTokenRow.expires_at <= now))
        self._persist()
        return result.rowcount

    # ============== 维修问题 ==============

    def add_problem(self, problem: CapsuleProblem) -> CapsuleProblem:
        row = CapsuleProblemRow()
        _copy_to_row(problem, row)
        self.db.add(row)
        self._persist()
        return _to_entity(CapsuleProblem, row)

    def get_problem(self, problem_id: str) -> Optional[CapsuleProblem]:
        return _to_entity(CapsuleProblem, self.db.get(CapsuleProblemRow, problem_id))

    def list_problems(self, capsule_number: Optional[str] = None,
                      is_resolved: Optional[bool] = None) -> List[CapsuleProblem]:
        stmt = select(CapsuleProblemRow)
        if capsule_number is not None:
            stmt = stmt.where(CapsuleProblemRow.capsule_number == capsule_number)
        if is_resolved is not None:
            stmt = stmt.where(CapsuleProblemRow.is_resolved == is_resolved)
        rows = self.db.execute(stmt.order_by(CapsuleProblemRow.reported_at)).scalars().all()
        return [_to_entity(CapsuleProblem, r) for r in rows]

    def save_problem(self, problem: CapsuleProblem) -> CapsuleProblem:
        row = self.db.get(CapsuleProblemRow, problem.id)
        if row is None:
            raise KeyError(problem.id)
        _copy_to_row(problem, row)
        self._persist()
        return _to_entity(CapsuleProblem, row)

    def delete_problem(self, problem_id: str) -> bool:
        result = self.db.execute(delete(CapsuleProblemRow).where(CapsuleProblemRow.id == problem_id))
        self._persist()
        return result.rowcount > 0

    # ============== 系统设置 ==============

    def get_setting(self, key: str) -> Optional[AppSetting]:
        return _to_entity(AppSetting, self.db.get(AppSettingRow, key))

    def save_setting(self, setting: AppSetting) -> AppSetting:
        row = self.db.get(AppSettingRow, setting.key)
        if row is None:
            row = AppSettingRow()
            self.db.add(row)
        _copy_to_row(setting, row)
        self._persist()
        return _to_entity(AppSetting, row)

    def list_settings(self) -> List[AppSetting]:
        rows = self.db.execute(select(AppSettingRow).order_by(AppSettingRow.key)).scalars().all()
        return [_to_entity(AppSetting, r) for r in rows]

    def delete_setting(self, key: str) -> bool:
        result = self.db.execute(delete(AppSettingRow).where(AppSettingRow.key == key))
        self._persist()
        return result.rowcount > 0

    # ============== 管理员通知 ==============

    def add_notification(self, notification: AdminNotification) -> AdminNotification:
        row = AdminNotificationRow()
        _copy_to_row(notification, row)
        self.db.add(row)
        self._persist()
        return _to_entity(AdminNotification, row)

    def get_notification(self, notification_id: str) -> Optional[AdminNotification]:
        return _to_entity(AdminNotification, self.db.get(AdminNotificationRow, notification_id))

    def list_notifications(self, is_read: Optional[bool] = None) -> List[AdminNotification]:
        stmt = select(AdminNotificationRow)
        if is_read is not None:
            stmt = stmt.where(AdminNotificationRow.is_read == is_read)
        rows = self.db.execute(stmt.order_by(AdminNotificationRow.created_at.desc())).scalars().all()
        return [_to_entity(AdminNotification, r) for r in rows]

    def save_notification(self, notification: AdminNotification) -> AdminNotification:
        row = self.db.get(AdminNotificationRow, notification.id)
        if row is None:
            raise KeyError(notification.id)
        _copy_to_row(notification, row)
        self._persist()
        return _to_entity(AdminNotification, row)

    def mark_all_notifications_read(self) -> int:
        result = self.db.execute(
            update(AdminNotificationRow)
            .where(AdminNotificationRow.is_read == False)  # noqa: E712
            .values(is_read=True)
            .execution_options(synchronize_session="fetch")
        )
        self._persist()
        return result.rowcount
