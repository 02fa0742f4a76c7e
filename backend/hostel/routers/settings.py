"""
系统设置路由
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from hostel.clock import Clock, get_clock
from hostel.models.schemas import SettingUpdate, SettingResponse
from hostel.models.tables import Employee
from hostel.repositories.base import HostelRepository
from hostel.routers.deps import get_repository, http_error
from hostel.security.auth import get_current_user, require_admin
from hostel.services.errors import HostelError
from hostel.services.settings_service import SettingsService

router = APIRouter(prefix="/settings", tags=["系统设置"])


@router.get("", response_model=List[SettingResponse])
def list_settings(
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
):
    return [SettingResponse.model_validate(s) for s in SettingsService(repo).list_settings()]


@router.get("/values")
def get_setting_values(
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
) -> Dict[str, Any]:
    """{key: 解析后的值}"""
    return SettingsService(repo).get_settings_map()


@router.get("/{key}", response_model=SettingResponse)
def get_setting(
    key: str,
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
):
    try:
        return SettingResponse.model_validate(SettingsService(repo).get_setting(key))
    except HostelError as e:
        raise http_error(e)


@router.put("", response_model=SettingResponse)
def update_setting(
    data: SettingUpdate,
    repo: HostelRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    current_user: Employee = Depends(require_admin)
):
    """新增或修改设置项"""
    try:
        setting = SettingsService(repo, clock).set_setting(
            data.key, data.value, current_user.username, data.description
        )
        return SettingResponse.model_validate(setting)
    except HostelError as e:
        raise http_error(e)


@router.delete("/{key}")
def delete_setting(
    key: str,
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(require_admin)
):
    try:
        SettingsService(repo).delete_setting(key)
        return {"message": "删除成功"}
    except HostelError as e:
        raise http_error(e)
