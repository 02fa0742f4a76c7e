"""
管理员通知服务
"""
import logging
import uuid
from typing import List, Optional

from hostel.clock import Clock, SystemClock
from hostel.models.entities import AdminNotification, NotificationType
from hostel.repositories.base import HostelRepository
from hostel.services.errors import NotFoundError

logger = logging.getLogger(__name__)


class NotificationService:
    """管理员通知服务"""

    def __init__(self, repository: HostelRepository, clock: Clock = None):
        self.repo = repository
        self.clock = clock or SystemClock()

    def create(self, type: NotificationType, title: str, message: str,
               guest_id: Optional[str] = None,
               capsule_number: Optional[str] = None) -> AdminNotification:
        notification = self.repo.add_notification(AdminNotification(
            id=str(uuid.uuid4()),
            type=type,
            title=title,
            message=message,
            guest_id=guest_id,
            capsule_number=capsule_number,
            created_at=self.clock.now()
        ))
        logger.debug(f"Notification {notification.id} created: {title}")
        return notification

    def list_notifications(self, unread_only: bool = False) -> List[AdminNotification]:
        return self.repo.list_notifications(is_read=False if unread_only else None)

    def unread_count(self) -> int:
        return len(self.repo.list_notifications(is_read=False))

    def mark_read(self, notification_id: str) -> AdminNotification:
        with self.repo.atomic():
            notification = self.repo.get_notification(notification_id)
            if not notification:
                raise NotFoundError("通知不存在")
            notification.is_read = True
            return self.repo.save_notification(notification)

    def mark_all_read(self) -> int:
        return self.repo.mark_all_notifications_read()
