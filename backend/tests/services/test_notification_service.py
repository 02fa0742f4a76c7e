"""
管理员通知与事件处理器测试
"""
import pytest

from hostel.models.entities import NotificationType
from hostel.models.events import EventType
from hostel.services.errors import NotFoundError
from hostel.services.event_bus import EventBus, Event, event_bus
from hostel.services.event_handlers import EventHandlers
from hostel.services.lifecycle_service import LifecycleService
from hostel.services.maintenance_service import MaintenanceService
from hostel.services.notification_service import NotificationService


@pytest.fixture
def service(memory_repo, frozen_clock):
    return NotificationService(memory_repo, frozen_clock)


@pytest.fixture
def handlers(memory_repo):
    handlers = EventHandlers(repository_factory=lambda: memory_repo)
    handlers.register_handlers()
    yield handlers
    handlers.unregister_handlers()


class TestNotificationService:

    def test_create_and_list(self, service, frozen_clock):
        first = service.create(NotificationType.MAINTENANCE, "新维修问题", "C03 灯不亮", capsule_number="C03")
        frozen_clock.advance(minutes=5)
        second = service.create(NotificationType.SELF_CHECKIN, "客人自助入住", "Siti", guest_id="g-1")

        assert [n.id for n in service.list_notifications()] == [second.id, first.id]
        assert service.unread_count() == 2

    def test_mark_read(self, service):
        notification = service.create(NotificationType.MAINTENANCE, "t", "m")
        assert service.mark_read(notification.id).is_read is True
        assert service.list_notifications(unread_only=True) == []

    def test_mark_unknown(self, service):
        with pytest.raises(NotFoundError):
            service.mark_read("missing")

    def test_mark_all_read(self, service):
        service.create(NotificationType.MAINTENANCE, "a", "m")
        service.create(NotificationType.MAINTENANCE, "b", "m")
        assert service.mark_all_read() == 2
        assert service.unread_count() == 0
        assert service.mark_all_read() == 0


class TestEventHandlers:
    """事件 -> 管理员通知"""

    def test_self_check_in_creates_notification(self, handlers, memory_repo, frozen_clock):
        lifecycle = LifecycleService(memory_repo, frozen_clock)
        token = lifecycle.token_service.issue({"capsule_number": "C02"}, "admin")
        guest = lifecycle.self_check_in(token.token, {"name": "Siti"})

        notifications = NotificationService(memory_repo).list_notifications()
        assert len(notifications) == 1
        assert notifications[0].type == NotificationType.SELF_CHECKIN
        assert notifications[0].guest_id == guest.id
        assert notifications[0].capsule_number == "C02"

    def test_problem_report_creates_notification(self, handlers, memory_repo, frozen_clock):
        MaintenanceService(memory_repo, frozen_clock).report_problem(
            {"capsule_number": "C04", "description": "fan noisy"}, "staff1"
        )

        notifications = NotificationService(memory_repo).list_notifications()
        assert [n.type for n in notifications] == [NotificationType.MAINTENANCE]
        assert "fan noisy" in notifications[0].message

    def test_cleaning_review_creates_notification(self, handlers, memory_repo, frozen_clock):
        event_bus.publish(Event(
            event_type=EventType.CAPSULE_CLEANING_REVIEW_REQUIRED,
            timestamp=frozen_clock.now(),
            data={"capsule_number": "C01", "guest_id": "g-1", "guest_name": "Ahmad"},
            source="test"
        ))

        notifications = NotificationService(memory_repo).list_notifications()
        assert notifications[0].type == NotificationType.CLEANING_REVIEW
        assert notifications[0].capsule_number == "C01"

    def test_staff_check_in_does_not_notify(self, handlers, memory_repo, frozen_clock, payload):
        LifecycleService(memory_repo, frozen_clock).check_in(payload("C01"), "admin")
        assert NotificationService(memory_repo).list_notifications() == []

    def test_register_is_idempotent(self, memory_repo):
        handlers = EventHandlers(repository_factory=lambda: memory_repo)
        handlers.register_handlers()
        handlers.register_handlers()
        try:
            event_bus.publish(Event(
                event_type=EventType.PROBLEM_REPORTED,
                timestamp=None,
                data={"capsule_number": "C01", "description": "x"},
                source="test"
            ))
            assert len(NotificationService(memory_repo).list_notifications()) == 1
        finally:
            handlers.unregister_handlers()

    def test_handler_failure_does_not_reach_publisher(self, frozen_clock):
        def broken_factory():
            raise RuntimeError("database down")

        handlers = EventHandlers(repository_factory=broken_factory)
        handlers.register_handlers()
        try:
            event_bus.publish(Event(
                event_type=EventType.PROBLEM_REPORTED,
                timestamp=frozen_clock.now(),
                data={"capsule_number": "C01", "description": "x"},
                source="test"
            ))
        finally:
            handlers.unregister_handlers()

    def test_handlers_on_private_bus(self, memory_repo, frozen_clock):
        bus = EventBus()
        handlers = EventHandlers(repository_factory=lambda: memory_repo)
        handlers.register_handlers(bus)
        bus.publish(Event(
            event_type=EventType.PROBLEM_REPORTED,
            timestamp=frozen_clock.now(),
            data={"capsule_number": "C01", "description": "x"},
            source="test"
        ))

        assert len(NotificationService(memory_repo).list_notifications()) == 1
        assert bus.get_history(EventType.PROBLEM_REPORTED)[0].source == "test"
        assert event_bus.handlers_for(EventType.PROBLEM_REPORTED) == []

        handlers.unregister_handlers(bus)
        assert bus.handlers_for(EventType.PROBLEM_REPORTED) == []
