"""
事件总线 - 进程内发布/订阅
服务层发布领域事件，通知等副作用由订阅者处理
"""
import logging
import threading
import uuid
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List

logger = logging.getLogger(__name__)

Handler = Callable[["Event"], None]


@dataclass
class Event:
    """领域事件"""
    event_type: str
    timestamp: datetime
    data: Dict[str, Any]
    source: str
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)


def _event_key(event_type) -> str:
    # EventType 与普通字符串使用同一个键
    return getattr(event_type, "value", event_type)


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", repr(handler))


class EventBus:
    """
    同步事件总线，线程安全

    subscribe(EventType.GUEST_CHECKED_OUT, handler)
    publish(Event(...))
    """

    def __init__(self, history_size: int = 100):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self._history: Deque[Event] = deque(maxlen=history_size)
        self._guard = threading.Lock()

    def subscribe(self, event_type, handler: Handler) -> None:
        """订阅；同一处理器对同一事件只登记一次"""
        key = _event_key(event_type)
        with self._guard:
            if handler in self._handlers[key]:
                return
            self._handlers[key].append(handler)
        logger.debug(f"{_handler_name(handler)} subscribed to {key}")

    def unsubscribe(self, event_type, handler: Handler) -> None:
        key = _event_key(event_type)
        with self._guard:
            if handler in self._handlers.get(key, ()):
                self._handlers[key].remove(handler)

    def handlers_for(self, event_type) -> List[Handler]:
        with self._guard:
            return list(self._handlers.get(_event_key(event_type), ()))

    def publish(self, event: Event) -> None:
        """
        依次调用订阅者
        订阅者抛出的异常记录日志后丢弃，发布方不受影响
        """
        self._history.append(event)
        for handler in self.handlers_for(event.event_type):
            try:
                handler(event)
            except Exception:
                logger.exception(f"{_handler_name(handler)} failed on {_event_key(event.event_type)}")

    def get_history(self, event_type=None, limit: int = 50) -> List[Event]:
        """最近的事件，最新在前"""
        key = _event_key(event_type) if event_type else None
        recent = [e for e in reversed(self._history) if key is None or _event_key(e.event_type) == key]
        return recent[:limit]

    def clear_subscribers(self) -> None:
        with self._guard:
            self._handlers.clear()

    def clear_history(self) -> None:
        self._history.clear()


# 进程内共享的事件总线
event_bus = EventBus()
