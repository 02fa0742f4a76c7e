"""
事件处理器
订阅领域事件，为管理员生成通知
"""
import logging
from typing import Callable

from hostel.models.entities import NotificationType
from hostel.models.events import EventType
from hostel.repositories.base import HostelRepository
from hostel.services.event_bus import event_bus, Event
from hostel.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def _default_repository_factory():
    from hostel.database import SessionLocal
    from hostel.repositories.sql import SqlAlchemyRepository
    return SqlAlchemyRepository(SessionLocal())


class EventHandlers:
    """
    事件处理器集合

    repository_factory: 每次处理事件时创建一个仓储（SQL 实现各自持有独立会话）
    """

    def __init__(self, repository_factory: Callable[[], HostelRepository] = None):
        self._repository_factory = repository_factory or _default_repository_factory
        self._registered = False

    def _notify(self, type: NotificationType, title: str, message: str, **refs) -> None:
        repo = self._repository_factory()
        try:
            NotificationService(repo).create(type, title, message, **refs)
        finally:
            db = getattr(repo, "db", None)
            if db is not None:
                db.close()

    def handle_guest_self_checked_in(self, event: Event) -> None:
        """客人完成自助入住"""
        data = event.data
        self._notify(
            NotificationType.SELF_CHECKIN,
            "客人自助入住",
            f"{data.get('guest_name')} 已通过自助链接入住胶囊 {data.get('capsule_number')}",
            guest_id=data.get("guest_id"),
            capsule_number=data.get("capsule_number"),
        )

    def handle_cleaning_review_required(self, event: Event) -> None:
        """退房后清洁状态写入失败，提醒人工复核"""
        data = event.data
        logger.warning(f"Capsule {data.get('capsule_number')} needs manual cleaning review")
        self._notify(
            NotificationType.CLEANING_REVIEW,
            "胶囊清洁状态待复核",
            f"客人 {data.get('guest_name')} 已退房，但胶囊 {data.get('capsule_number')} "
            f"未能标记为待清洁，请人工确认",
            guest_id=data.get("guest_id"),
            capsule_number=data.get("capsule_number"),
        )

    def handle_problem_reported(self, event: Event) -> None:
        """新维修问题"""
        data = event.data
        self._notify(
            NotificationType.MAINTENANCE,
            "新维修问题",
            f"胶囊 {data.get('capsule_number')}: {data.get('description')}",
            capsule_number=data.get("capsule_number"),
        )

    def register_handlers(self, event_bus_instance=None) -> None:
        """注册所有事件处理器"""
        if self._registered:
            return

        bus = event_bus_instance or event_bus
        bus.subscribe(EventType.GUEST_SELF_CHECKED_IN, self.handle_guest_self_checked_in)
        bus.subscribe(EventType.CAPSULE_CLEANING_REVIEW_REQUIRED, self.handle_cleaning_review_required)
        bus.subscribe(EventType.PROBLEM_REPORTED, self.handle_problem_reported)

        self._registered = True
        logger.info("Event handlers registered")

    def unregister_handlers(self, event_bus_instance=None) -> None:
        """取消注册（用于测试）"""
        bus = event_bus_instance or event_bus
        bus.unsubscribe(EventType.GUEST_SELF_CHECKED_IN, self.handle_guest_self_checked_in)
        bus.unsubscribe(EventType.CAPSULE_CLEANING_REVIEW_REQUIRED, self.handle_cleaning_review_required)
        bus.unsubscribe(EventType.PROBLEM_REPORTED, self.handle_problem_reported)
        self._registered = False


# 全局事件处理器实例
event_handlers = EventHandlers()


def register_event_handlers():
    """注册所有事件处理器（应用启动时调用）"""
    event_handlers.register_handlers()
