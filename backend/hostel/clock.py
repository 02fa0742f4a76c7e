"""
时钟 - 为业务层提供 "现在"
所有过期判断、今日退房等逻辑都通过注入的时钟取时间，便于测试
"""
from datetime import datetime, date, timedelta
from typing import Optional
from zoneinfo import ZoneInfo


class Clock:
    """时钟接口"""

    def now(self) -> datetime:
        raise NotImplementedError

    def today(self) -> date:
        """旅舍本地日历日"""
        return self.now().date()


class SystemClock(Clock):
    """
    系统时钟

    返回旅舍时区的本地时间（去掉 tzinfo，与数据库中的 naive 时间一致）
    """

    def __init__(self, timezone: Optional[str] = None):
        self._tz = ZoneInfo(timezone) if timezone else None

    def now(self) -> datetime:
        if self._tz is None:
            return datetime.now()
        return datetime.now(self._tz).replace(tzinfo=None)


class FrozenClock(Clock):
    """固定时钟（测试用），可手动推进"""

    def __init__(self, current: Optional[datetime] = None):
        self._current = current or datetime(2025, 1, 15, 10, 0, 0)

    def now(self) -> datetime:
        return self._current

    def advance(self, **kwargs) -> datetime:
        """推进时钟，参数同 timedelta"""
        self._current = self._current + timedelta(**kwargs)
        return self._current

    def set(self, current: datetime) -> None:
        self._current = current


def get_clock() -> Clock:
    """依赖注入：获取系统时钟"""
    from hostel.config import settings
    return SystemClock(settings.HOSTEL_TIMEZONE)
