"""
后台定时任务 - 基于 APScheduler
在请求之外周期性清理过期的自助入住链接
"""
import logging
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from hostel.clock import Clock
from hostel.repositories.base import HostelRepository
from hostel.services.token_service import TokenService

logger = logging.getLogger(__name__)

TOKEN_SWEEP_JOB_ID = "guest_token_sweep"


class TokenSweepScheduler:
    """过期链接清理调度器；每次执行使用新的仓储"""

    def __init__(self, repository_factory: Callable[[], HostelRepository],
                 clock: Optional[Clock] = None,
                 interval_minutes: int = 60,
                 scheduler: Optional[BackgroundScheduler] = None):
        self._repository_factory = repository_factory
        self._clock = clock
        self._interval_minutes = interval_minutes
        self._scheduler = scheduler or BackgroundScheduler()

    @property
    def scheduler(self) -> BackgroundScheduler:
        return self._scheduler

    def run_once(self) -> int:
        """执行一次清理，返回删除数量；异常只记录日志"""
        repo = self._repository_factory()
        try:
            return TokenService(repo, self._clock).sweep_expired()
        except Exception as e:
            logger.error(f"Guest token sweep failed: {e}", exc_info=True)
            return 0
        finally:
            db = getattr(repo, "db", None)
            if db is not None:
                db.close()

    def start(self) -> None:
        if self._scheduler.running:
            return
        self._scheduler.add_job(
            self.run_once,
            trigger="interval",
            minutes=self._interval_minutes,
            id=TOKEN_SWEEP_JOB_ID,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(f"Token sweep scheduler started (every {self._interval_minutes} min)")

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Token sweep scheduler shut down")
