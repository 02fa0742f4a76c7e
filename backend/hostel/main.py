"""
胶囊旅舍前台系统 主应用入口
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hostel.config import settings as app_settings
from hostel.database import init_db, SessionLocal
from hostel.routers import (
    auth, capsules, guests, occupancy, guest_tokens, guest_checkin,
    maintenance, settings, notifications
)

logger = logging.getLogger(__name__)


def _sql_repository():
    from hostel.repositories.sql import SqlAlchemyRepository
    return SqlAlchemyRepository(SessionLocal())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期：初始化数据库、注册事件处理器、启动过期链接清理"""
    logging.basicConfig(
        level=getattr(logging, app_settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    init_db()

    from hostel.services.event_handlers import register_event_handlers
    register_event_handlers()

    sweeper = None
    if app_settings.ENABLE_SCHEDULER:
        from hostel.clock import get_clock
        from hostel.services.scheduler import TokenSweepScheduler
        sweeper = TokenSweepScheduler(
            _sql_repository,
            clock=get_clock(),
            interval_minutes=app_settings.TOKEN_SWEEP_INTERVAL_MINUTES
        )
        sweeper.start()

    logger.info(f"{app_settings.APP_NAME} started")
    yield

    if sweeper:
        sweeper.shutdown()


app = FastAPI(
    title=app_settings.APP_NAME,
    description="胶囊旅舍前台系统：入住退房、胶囊清洁、自助入住链接",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(capsules.router)
app.include_router(guests.router)
app.include_router(occupancy.router)
app.include_router(guest_tokens.router)
app.include_router(guest_checkin.router)
app.include_router(maintenance.router)
app.include_router(settings.router)
app.include_router(notifications.router)


@app.get("/")
def root():
    return {"name": app_settings.APP_NAME, "version": "1.0.0"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}
