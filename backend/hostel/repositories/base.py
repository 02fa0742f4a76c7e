"""
仓储接口
业务层只依赖此接口；内存实现用于测试，SQLAlchemy 实现用于生产
"""
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime, date
from typing import List, Optional, Set

from hostel.models.entities import (
    Capsule, Guest, GuestToken, CapsuleProblem, AppSetting, AdminNotification,
    CapsuleSection, CleaningStatus
)


class HostelRepository(ABC):
    """
    旅舍仓储接口

    原子性约定：
    - atomic() 返回可重入的原子单元（SQL 为事务，内存为单写者临界区）；最外层异常退出时撤销其中的写入
    - add_checked_in_guest 在胶囊已有在住客人时抛出 CapsuleOccupiedError
    - check_out_guest / mark_token_used 是比较并交换操作，失败返回 None / False
    """

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """原子单元"""

    # ============== 胶囊 ==============

    @abstractmethod
    def add_capsule(self, capsule: Capsule) -> Capsule:
        ...

    @abstractmethod
    def get_capsule(self, number: str) -> Optional[Capsule]:
        ...

    @abstractmethod
    def lock_capsule(self, number: str) -> Optional[Capsule]:
        """读取胶囊并在原子单元内锁定（按胶囊号串行化入住）"""

    @abstractmethod
    def list_capsules(self, section: Optional[CapsuleSection] = None,
                      cleaning_status: Optional[CleaningStatus] = None) -> List[Capsule]:
        """按胶囊号自然顺序返回"""

    @abstractmethod
    def count_capsules(self) -> int:
        ...

    @abstractmethod
    def save_capsule(self, capsule: Capsule) -> Capsule:
        ...

    @abstractmethod
    def delete_capsule(self, number: str) -> bool:
        ...

    # ============== 客人 ==============

    @abstractmethod
    def add_checked_in_guest(self, guest: Guest) -> Guest:
        """插入在住客人；胶囊已有在住客人时抛出 CapsuleOccupiedError"""

    @abstractmethod
    def get_guest(self, guest_id: str) -> Optional[Guest]:
        ...

    @abstractmethod
    def find_guests(self, is_checked_in: Optional[bool] = None,
                    capsule_number: Optional[str] = None,
                    expected_checkout_date: Optional[date] = None,
                    self_checkin_token: Optional[str] = None) -> List[Guest]:
        """按入住时间顺序返回"""

    @abstractmethod
    def count_checked_in_guests(self) -> int:
        ...

    @abstractmethod
    def occupied_capsule_numbers(self) -> Set[str]:
        ...

    @abstractmethod
    def save_guest(self, guest: Guest) -> Guest:
        ...

    @abstractmethod
    def check_out_guest(self, guest_id: str, checkout_time: datetime) -> Optional[Guest]:
        """仅当客人仍在住时写入退房；否则返回 None"""

    # ============== 自助入住令牌 ==============

    @abstractmethod
    def add_token(self, token: GuestToken) -> GuestToken:
        ...

    @abstractmethod
    def get_token(self, token: str) -> Optional[GuestToken]:
        ...

    @abstractmethod
    def list_tokens(self) -> List[GuestToken]:
        """按创建时间顺序返回"""

    @abstractmethod
    def mark_token_used(self, token: str, used_at: datetime) -> bool:
        """仅当令牌存在且未使用时标记为已使用"""

    @abstractmethod
    def delete_token(self, token: str) -> bool:
        ...

    @abstractmethod
    def delete_expired_tokens(self, now: datetime) -> int:
        """删除 expires_at <= now 的令牌，返回删除数量"""

    # ============== 维修问题 ==============

    @abstractmethod
    def add_problem(self, problem: CapsuleProblem) -> CapsuleProblem:
        ...

    @abstractmethod
    def get_problem(self, problem_id: str) -> Optional[CapsuleProblem]:
        ...

    @abstractmethod
    def list_problems(self, capsule_number: Optional[str] = None,
                      is_resolved: Optional[bool] = None) -> List[CapsuleProblem]:
        """按报修时间顺序返回"""

    @abstractmethod
    def save_problem(self, problem: CapsuleProblem) -> CapsuleProblem:
        ...

    @abstractmethod
    def delete_problem(self, problem_id: str) -> bool:
        ...

    # ============== 系统设置 ==============

    @abstractmethod
    def get_setting(self, key: str) -> Optional[AppSetting]:
        ...

    @abstractmethod
    def save_setting(self, setting: AppSetting) -> AppSetting:
        """新增或覆盖"""

    @abstractmethod
    def list_settings(self) -> List[AppSetting]:
        ...

    @abstractmethod
    def delete_setting(self, key: str) -> bool:
        ...

    # ============== 管理员通知 ==============

    @abstractmethod
    def add_notification(self, notification: AdminNotification) -> AdminNotification:
        ...

    @abstractmethod
    def get_notification(self, notification_id: str) -> Optional[AdminNotification]:
        ...

    @abstractmethod
    def list_notifications(self, is_read: Optional[bool] = None) -> List[AdminNotification]:
        """最新在前"""

    @abstractmethod
    def save_notification(self, notification: AdminNotification) -> AdminNotification:
        ...

    @abstractmethod
    def mark_all_notifications_read(self) -> int:
        ...
