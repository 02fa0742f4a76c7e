"""
胶囊管理路由
"""
from typing import List, Optional

from fastapi import APIRouter, Depends

from hostel.clock import Clock, get_clock
from hostel.models.entities import CapsuleSection, CleaningStatus
from hostel.models.schemas import CapsuleCreate, CapsuleUpdate, CapsuleResponse
from hostel.models.tables import Employee
from hostel.repositories.base import HostelRepository
from hostel.routers.deps import get_repository, http_error
from hostel.security.auth import get_current_user, require_admin
from hostel.services.capsule_service import CapsuleService
from hostel.services.errors import HostelError
from hostel.services.lifecycle_service import LifecycleService

router = APIRouter(prefix="/capsules", tags=["胶囊管理"])


def _responses(capsules) -> List[CapsuleResponse]:
    return [CapsuleResponse.model_validate(c) for c in capsules]


@router.get("", response_model=List[CapsuleResponse])
def list_capsules(
    section: Optional[CapsuleSection] = None,
    cleaning_status: Optional[CleaningStatus] = None,
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
):
    """胶囊列表"""
    return _responses(CapsuleService(repo).list_capsules(section, cleaning_status))


@router.get("/available", response_model=List[CapsuleResponse])
def list_available_capsules(
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
):
    """可入住胶囊"""
    return _responses(CapsuleService(repo).get_available_capsules())


@router.get("/uncleaned", response_model=List[CapsuleResponse])
def list_uncleaned_capsules(
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
):
    """待清洁胶囊"""
    return _responses(CapsuleService(repo).get_uncleaned_capsules())


@router.post("/clean-all", response_model=List[CapsuleResponse])
def mark_all_cleaned(
    repo: HostelRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user)
):
    """全部标记为已清洁"""
    return _responses(CapsuleService(repo, clock).mark_all_cleaned(current_user.username))


@router.get("/{number}", response_model=CapsuleResponse)
def get_capsule(
    number: str,
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
):
    try:
        return CapsuleResponse.model_validate(CapsuleService(repo).get_capsule(number))
    except HostelError as e:
        raise http_error(e)


@router.post("", response_model=CapsuleResponse, status_code=201)
def create_capsule(
    data: CapsuleCreate,
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(require_admin)
):
    """新增胶囊"""
    try:
        return CapsuleResponse.model_validate(CapsuleService(repo).create_capsule(data))
    except HostelError as e:
        raise http_error(e)


@router.patch("/{number}", response_model=CapsuleResponse)
def update_capsule(
    number: str,
    data: CapsuleUpdate,
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(require_admin)
):
    """修改胶囊属性"""
    try:
        return CapsuleResponse.model_validate(CapsuleService(repo).update_capsule(number, data))
    except HostelError as e:
        raise http_error(e)


@router.delete("/{number}")
def delete_capsule(
    number: str,
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(require_admin)
):
    """删除胶囊（有在住客人时拒绝）"""
    try:
        CapsuleService(repo).delete_capsule(number)
        return {"message": "删除成功"}
    except HostelError as e:
        raise http_error(e)


@router.post("/{number}/clean", response_model=CapsuleResponse)
def mark_cleaned(
    number: str,
    repo: HostelRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user)
):
    """标记已清洁"""
    try:
        capsule = LifecycleService(repo, clock).mark_cleaned(number, current_user.username)
        return CapsuleResponse.model_validate(capsule)
    except HostelError as e:
        raise http_error(e)
