"""
系统设置服务测试
"""
import pytest

from hostel.config import settings
from hostel.models.entities import AppSetting
from hostel.services.errors import SettingNotFound, ValidationError
from hostel.services.settings_service import (
    GUEST_TOKEN_EXPIRATION_HOURS, SettingsService, parse_setting_value
)


@pytest.fixture
def service(memory_repo, frozen_clock):
    return SettingsService(memory_repo, frozen_clock)


@pytest.mark.parametrize("raw,parsed", [
    ("true", True),
    ("false", False),
    ("12", 12),
    ("1.5", 1.5),
    ("Kuala Lumpur", "Kuala Lumpur"),
])
def test_parse_setting_value(raw, parsed):
    assert parse_setting_value(raw) == parsed


def test_set_and_get(service, frozen_clock):
    setting = service.set_setting("hostelName", "Pelangi", "admin", description="旅舍名称")

    assert setting.value == "Pelangi"
    assert setting.updated_by == "admin"
    assert setting.updated_at == frozen_clock.now()
    assert service.get_setting("hostelName").description == "旅舍名称"


def test_overwrite_keeps_description(service):
    service.set_setting("hostelName", "Pelangi", "admin", description="旅舍名称")
    updated = service.set_setting("hostelName", "Pelangi Capsule", "staff1")
    assert updated.value == "Pelangi Capsule"
    assert updated.description == "旅舍名称"


def test_bool_and_number_values_stored_as_text(service):
    service.set_setting("maintenanceMode", True, "admin")
    service.set_setting("maxGuests", 24, "admin")

    assert service.get_setting("maintenanceMode").value == "true"
    assert service.get_settings_map() == {"maintenanceMode": True, "maxGuests": 24}


def test_empty_key(service):
    with pytest.raises(ValidationError):
        service.set_setting("  ", "x", "admin")


def test_unknown_setting(service):
    with pytest.raises(SettingNotFound):
        service.get_setting("missing")
    with pytest.raises(SettingNotFound):
        service.delete_setting("missing")


def test_delete_setting(service):
    service.set_setting("hostelName", "Pelangi", "admin")
    service.delete_setting("hostelName")
    assert service.list_settings() == []


class TestTokenExpiration:
    """自助入住链接默认有效期"""

    def test_default_from_config(self, service):
        assert service.get_guest_token_expiration_hours() == settings.GUEST_TOKEN_EXPIRE_HOURS

    def test_configured_value(self, service):
        service.set_setting(GUEST_TOKEN_EXPIRATION_HOURS, "48", "admin")
        assert service.get_guest_token_expiration_hours() == 48

    @pytest.mark.parametrize("value", ["0", "abc", str(settings.GUEST_TOKEN_MAX_HOURS + 1)])
    def test_invalid_value_rejected(self, service, value):
        with pytest.raises(ValidationError):
            service.set_setting(GUEST_TOKEN_EXPIRATION_HOURS, value, "admin")

    def test_invalid_stored_value_falls_back(self, service, memory_repo):
        memory_repo.save_setting(AppSetting(key=GUEST_TOKEN_EXPIRATION_HOURS, value="soon"))
        assert service.get_guest_token_expiration_hours() == settings.GUEST_TOKEN_EXPIRE_HOURS
