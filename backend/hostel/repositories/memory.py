"""
内存仓储
以字典保存领域对象（按 id / 胶囊号索引），并维护 胶囊号 -> 在住客人 的索引
所有读写在同一把可重入锁内完成，作为单写者串行化点
"""
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, date
from typing import Dict, List, Optional, Set

from hostel.models.entities import (
    Capsule, Guest, GuestToken, CapsuleProblem, AppSetting, AdminNotification,
    CapsuleSection, CleaningStatus, capsule_sort_key
)
from hostel.repositories.base import HostelRepository
from hostel.services.errors import CapsuleOccupiedError


class InMemoryRepository(HostelRepository):
    """内存仓储；返回的对象均为副本，修改后需调用 save_* 写回"""

    _TABLES = ("_capsules", "_guests", "_active_by_capsule", "_tokens",
               "_problems", "_settings", "_notifications")

    def __init__(self):
        self._lock = threading.RLock()
        self._capsules: Dict[str, Capsule] = {}
        self._guests: Dict[str, Guest] = {}
        self._active_by_capsule: Dict[str, str] = {}
        self._tokens: Dict[str, GuestToken] = {}
        self._problems: Dict[str, CapsuleProblem] = {}
        self._settings: Dict[str, AppSetting] = {}
        self._notifications: Dict[str, AdminNotification] = {}
        self._depth = 0

    @contextmanager
    def atomic(self):
        """可重入原子单元：持有全局锁；最外层抛出异常时恢复进入前的数据"""
        with self._lock:
            snapshot = self._snapshot() if self._depth == 0 else None
            self._depth += 1
            try:
                yield self
            except BaseException:
                if snapshot is not None:
                    self._restore(snapshot)
                raise
            finally:
                self._depth -= 1

    def _snapshot(self) -> Dict[str, dict]:
        # 存储的对象只整体替换不原地修改，浅拷贝即可
        return {name: dict(getattr(self, name)) for name in self._TABLES}

    def _restore(self, snapshot: Dict[str, dict]) -> None:
        for name, saved in snapshot.items():
            setattr(self, name, saved)

    # ============== 胶囊 ==============

    def add_capsule(self, capsule: Capsule) -> Capsule:
        with self._lock:
            if capsule.number in self._capsules:
                raise ValueError(f"capsule {capsule.number} already exists")
            self._capsules[capsule.number] = replace(capsule)
            return replace(capsule)

    def get_capsule(self, number: str) -> Optional[Capsule]:
        with self._lock:
            capsule = self._capsules.get(number)
            return replace(capsule) if capsule else None

    def lock_capsule(self, number: str) -> Optional[Capsule]:
        # 调用方已在 atomic() 内持有全局锁
        return self.get_capsule(number)

    def list_capsules(self, section: Optional[CapsuleSection] = None,
                      cleaning_status: Optional[CleaningStatus] = None) -> List[Capsule]:
        with self._lock:
            result = [
                replace(c) for c in self._capsules.values()
                if (section is None or c.section == section)
                and (cleaning_status is None or c.cleaning_status == cleaning_status)
            ]
        return sorted(result, key=lambda c: capsule_sort_key(c.number))

    def count_capsules(self) -> int:
        with self._lock:
            return len(self._capsules)

    def save_capsule(self, capsule: Capsule) -> Capsule:
        with self._lock:
            if capsule.number not in self._capsules:
                raise KeyError(capsule.number)
            self._capsules[capsule.number] = replace(capsule)
            return replace(capsule)

    def delete_capsule(self, number: str) -> bool:
        with self._lock:
            return self._capsules.pop(number, None) is not None

    # ============== 客人 ==============

    def add_checked_in_guest(self, guest: Guest) -> Guest:
        with self._lock:
            if guest.capsule_number in self._active_by_capsule:
                raise CapsuleOccupiedError(guest.capsule_number)
            stored = replace(guest, is_checked_in=True)
            self._guests[stored.id] = stored
            self._active_by_capsule[stored.capsule_number] = stored.id
            return replace(stored)

    def get_guest(self, guest_id: str) -> Optional[Guest]:
        with self._lock:
            guest = self._guests.get(guest_id)
            return replace(guest) if guest else None

    def find_guests(self, is_checked_in: Optional[bool] = None,
                    capsule_number: Optional[str] = None,
                    expected_checkout_date: Optional[date] = None,
                    self_checkin_token: Optional[str] = None) -> List[Guest]:
        with self._lock:
            result = [
                replace(g) for g in self._guests.values()
                if (is_checked_in is None or g.is_checked_in == is_checked_in)
                and (capsule_number is None or g.capsule_number == capsule_number)
                and (expected_checkout_date is None or g.expected_checkout_date == expected_checkout_date)
                and (self_checkin_token is None or g.self_checkin_token == self_checkin_token)
            ]
        return sorted(result, key=lambda g: g.checkin_time)

    def count_checked_in_guests(self) -> int:
        with self._lock:
            return len(self._active_by_capsule)

    def occupied_capsule_numbers(self) -> Set[str]:
        with self._lock:
            return set(self._active_by_capsule)

    def save_guest(self, guest: Guest) -> Guest:
        with self._lock:
            current = self._guests.get(guest.id)
            if current is None:
                raise KeyError(guest.id)
            # 入住状态只能通过 add_checked_in_guest / check_out_guest 变更
            stored = replace(guest, is_checked_in=current.is_checked_in,
                             checkout_time=current.checkout_time,
                             capsule_number=current.capsule_number)
            self._guests[guest.id] = stored
            return replace(stored)

    def check_out_guest(self, guest_id: str, checkout_time: datetime) -> Optional[Guest]:
        with self._lock:
            guest = self._guests.get(guest_id)
            if guest is None or not guest.is_checked_in:
                return None
            stored = replace(guest, is_checked_in=False, checkout_time=checkout_time)
            self._guests[guest_id] = stored
            if self._active_by_capsule.get(stored.capsule_number) == guest_id:
                del self._active_by_capsule[stored.capsule_number]
            return replace(stored)

    # ============== 自助入住令牌 ==============

    def add_token(self, token: GuestToken) -> GuestToken:
        with self._lock:
            if token.token in self._tokens:
                raise ValueError("duplicate token")
            self._tokens[token.token] = replace(token)
            return replace(token)

    def get_token(self, token: str) -> Optional[GuestToken]:
        with self._lock:
            record = self._tokens.get(token)
            return replace(record) if record else None

    def list_tokens(self) -> List[GuestToken]:
        with self._lock:
            result = [replace(t) for t in self._tokens.values()]
        return sorted(result, key=lambda t: t.created_at)

    def mark_token_used(self, token: str, used_at: datetime) -> bool:
        with self._lock:
            record = self._tokens.get(token)
            if record is None or record.is_used:
                return False
            self._tokens[token] = replace(record, is_used=True, used_at=used_at)
            return True

    def delete_token(self, token: str) -> bool:
        with self._lock:
            return self._tokens.pop(token, None) is not None

    def delete_expired_tokens(self, now: datetime) -> int:
        with self._lock:
            expired = [k for k, t in self._tokens.items() if t.expires_at <= now]
            for key in expired:
                del self._tokens[key]
            return len(expired)

    # ============== 维修问题 ==============

    def add_problem(self, problem: CapsuleProblem) -> CapsuleProblem:
        with self._lock:
            self._problems[problem.id] = replace(problem)
            return replace(problem)

    def get_problem(self, problem_id: str) -> Optional[CapsuleProblem]:
        with self._lock:
            problem = self._problems.get(problem_id)
            return replace(problem) if problem else None

    def list_problems(self, capsule_number: Optional[str] = None,
                      is_resolved: Optional[bool] = None) -> List[CapsuleProblem]:
        with self._lock:
            result = [
                replace(p) for p in self._problems.values()
                if (capsule_number is None or p.capsule_number == capsule_number)
                and (is_resolved is None or p.is_resolved == is_resolved)
            ]
        return sorted(result, key=lambda p: p.reported_at)

    def save_problem(self, problem: CapsuleProblem) -> CapsuleProblem:
        with self._lock:
            if problem.id not in self._problems:
                raise KeyError(problem.id)
            self._problems[problem.id] = replace(problem)
            return replace(problem)

    def delete_problem(self, problem_id: str) -> bool:
        with self._lock:
            return self._problems.pop(problem_id, None) is not None

    # ============== 系统设置 ==============

    def get_setting(self, key: str) -> Optional[AppSetting]:
        with self._lock:
            setting = self._settings.get(key)
            return replace(setting) if setting else None

    def save_setting(self, setting: AppSetting) -> AppSetting:
        with self._lock:
            self._settings[setting.key] = replace(setting)
            return replace(setting)

    def list_settings(self) -> List[AppSetting]:
        with self._lock:
            return sorted((replace(s) for s in self._settings.values()), key=lambda s: s.key)

    def delete_setting(self, key: str) -> bool:
        with self._lock:
            return self._settings.pop(key, None) is not None

    # ============== 管理员通知 ==============

    def add_notification(self, notification: AdminNotification) -> AdminNotification:
        with self._lock:
            self._notifications[notification.id] = replace(notification)
            return replace(notification)

    def get_notification(self, notification_id: str) -> Optional[AdminNotification]:
        with self._lock:
            notification = self._notifications.get(notification_id)
            return replace(notification) if notification else None

    def list_notifications(self, is_read: Optional[bool] = None) -> List[AdminNotification]:
        with self._lock:
            result = [
                replace(n) for n in self._notifications.values()
                if is_read is None or n.is_read == is_read
            ]
        return sorted(result, key=lambda n: n.created_at, reverse=True)

    def save_notification(self, notification: AdminNotification) -> AdminNotification:
        with self._lock:
            if notification.id not in self._notifications:
                raise KeyError(notification.id)
            self._notifications[notification.id] = replace(notification)
            return replace(notification)

    def mark_all_notifications_read(self) -> int:
        with self._lock:
            unread = [n for n in self._notifications.values() if not n.is_read]
            for n in unread:
                self._notifications[n.id] = replace(n, is_read=True)
            return len(unread)
