"""
应用配置
从环境变量 / .env 读取配置
"""
from typing import Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "Capsule Hostel Front Desk"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./hostel.db"

    # JWT 配置
    SECRET_KEY: str = "hostel-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60

    # 旅舍本地时区（"今天" 的判定以此为准）
    HOSTEL_TIMEZONE: str = "Asia/Kuala_Lumpur"

    # 自助入住链接
    GUEST_TOKEN_EXPIRE_HOURS: int = 24
    GUEST_TOKEN_MAX_HOURS: int = 168
    SELF_CHECKIN_EDIT_WINDOW_HOURS: int = 1
    PUBLIC_BASE_URL: Optional[str] = None

    # 过期链接清理任务
    ENABLE_SCHEDULER: bool = True
    TOKEN_SWEEP_INTERVAL_MINUTES: int = 60

    model_config = ConfigDict(env_file=".env", case_sensitive=True)


# 全局设置实例
settings = Settings()
