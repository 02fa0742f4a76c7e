"""
系统设置服务
设置项以字符串保存，读取时按需解析；未设置的项回落到配置文件默认值
"""
import logging
from typing import Any, Dict, List, Optional

from hostel.clock import Clock, SystemClock
from hostel.config import settings
from hostel.models.entities import AppSetting
from hostel.repositories.base import HostelRepository
from hostel.services.errors import SettingNotFound, ValidationError

logger = logging.getLogger(__name__)

GUEST_TOKEN_EXPIRATION_HOURS = "guestTokenExpirationHours"


def parse_setting_value(value: str) -> Any:
    """"true"/"false" -> bool，数字字符串 -> int/float，其余原样返回"""
    if value == "true":
        return True
    if value == "false":
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


class SettingsService:
    """系统设置服务"""

    def __init__(self, repository: HostelRepository, clock: Clock = None):
        self.repo = repository
        self.clock = clock or SystemClock()

    def list_settings(self) -> List[AppSetting]:
        return self.repo.list_settings()

    def get_settings_map(self) -> Dict[str, Any]:
        """所有设置项 {key: 解析后的值}"""
        return {s.key: parse_setting_value(s.value) for s in self.repo.list_settings()}

    def get_setting(self, key: str) -> AppSetting:
        setting = self.repo.get_setting(key)
        if not setting:
            raise SettingNotFound(key)
        return setting

    def set_setting(self, key: str, value: Any, updated_by: str,
                    description: Optional[str] = None) -> AppSetting:
        """新增或覆盖设置项"""
        key = (key or "").strip()
        if not key:
            raise ValidationError("设置项名称不能为空")
        if value is None:
            raise ValidationError(f"设置项 {key} 的值不能为空")
        if isinstance(value, bool):
            value = "true" if value else "false"
        value = str(value)
        if key == GUEST_TOKEN_EXPIRATION_HOURS:
            self._check_expiration_hours(value)

        with self.repo.atomic():
            current = self.repo.get_setting(key)
            setting = AppSetting(
                key=key,
                value=value,
                description=description if description is not None else (current.description if current else None),
                updated_by=updated_by,
                updated_at=self.clock.now()
            )
            setting = self.repo.save_setting(setting)
        logger.info(f"Setting {key} updated by {updated_by}")
        return setting

    def delete_setting(self, key: str) -> None:
        if not self.repo.delete_setting(key):
            raise SettingNotFound(key)

    def get_guest_token_expiration_hours(self) -> int:
        """自助入住链接默认有效期（小时）"""
        setting = self.repo.get_setting(GUEST_TOKEN_EXPIRATION_HOURS)
        if setting is None:
            return settings.GUEST_TOKEN_EXPIRE_HOURS
        try:
            return self._check_expiration_hours(setting.value)
        except ValidationError:
            logger.warning(f"Invalid {GUEST_TOKEN_EXPIRATION_HOURS} value {setting.value!r}, using default")
            return settings.GUEST_TOKEN_EXPIRE_HOURS

    @staticmethod
    def _check_expiration_hours(value: str) -> int:
        try:
            hours = int(value)
        except (TypeError, ValueError):
            raise ValidationError("链接有效期必须是整数小时")
        if hours < 1 or hours > settings.GUEST_TOKEN_MAX_HOURS:
            raise ValidationError(f"链接有效期必须在 1 到 {settings.GUEST_TOKEN_MAX_HOURS} 小时之间")
        return hours
