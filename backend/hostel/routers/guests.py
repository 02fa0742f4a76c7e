"""
客人入住 / 退房路由
"""
from typing import List

from fastapi import APIRouter, Depends

from hostel.clock import Clock, get_clock
from hostel.models.schemas import (
    GuestCheckIn, GuestResponse, CheckOutRequest, CheckOutResponse,
    PaginationParams, Page
)
from hostel.models.tables import Employee
from hostel.repositories.base import HostelRepository
from hostel.routers.deps import get_repository, get_pagination, http_error, to_page
from hostel.security.auth import get_current_user
from hostel.services.errors import HostelError
from hostel.services.guest_service import GuestService
from hostel.services.lifecycle_service import LifecycleService

router = APIRouter(prefix="/guests", tags=["客人管理"])


@router.post("/checkin", response_model=GuestResponse, status_code=201)
def check_in(
    data: GuestCheckIn,
    repo: HostelRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user)
):
    """前台办理入住"""
    try:
        guest = LifecycleService(repo, clock).check_in(data, current_user.username)
        return GuestResponse.model_validate(guest)
    except HostelError as e:
        raise http_error(e)


@router.post("/checkout", response_model=CheckOutResponse)
def check_out(
    data: CheckOutRequest,
    repo: HostelRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user)
):
    """
    办理退房
    cleaning_flag_updated 为 false 时客人已退房，但胶囊清洁状态需人工复核
    """
    try:
        result = LifecycleService(repo, clock).check_out(data.guest_id, current_user.username)
    except HostelError as e:
        raise http_error(e)
    return CheckOutResponse(
        guest=GuestResponse.model_validate(result.guest),
        cleaning_flag_updated=result.cleaning_flag_updated,
        warning=result.warning
    )


@router.get("/checked-in", response_model=Page[GuestResponse])
def list_checked_in(
    pagination: PaginationParams = Depends(get_pagination),
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
):
    """在住客人"""
    return to_page(GuestService(repo).list_checked_in(pagination), GuestResponse)


@router.get("/history", response_model=Page[GuestResponse])
def list_history(
    pagination: PaginationParams = Depends(get_pagination),
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
):
    """入住历史（已退房）"""
    return to_page(GuestService(repo).list_history(pagination), GuestResponse)


@router.get("/checkout-today", response_model=List[GuestResponse])
def list_expected_checkout_today(
    repo: HostelRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user)
):
    """预计今天退房"""
    guests = GuestService(repo, clock).list_expected_checkout_today()
    return [GuestResponse.model_validate(g) for g in guests]


@router.get("/overdue", response_model=List[GuestResponse])
def list_overdue(
    repo: HostelRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user)
):
    """逾期未退房"""
    return [GuestResponse.model_validate(g) for g in GuestService(repo, clock).list_overdue()]


@router.get("/by-capsule/{capsule_number}", response_model=List[GuestResponse])
def list_by_capsule(
    capsule_number: str,
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
):
    guests = GuestService(repo).get_guests_by_capsule(capsule_number)
    return [GuestResponse.model_validate(g) for g in guests]


@router.get("/{guest_id}", response_model=GuestResponse)
def get_guest(
    guest_id: str,
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
):
    try:
        return GuestResponse.model_validate(GuestService(repo).get_guest(guest_id))
    except HostelError as e:
        raise http_error(e)


@router.patch("/{guest_id}", response_model=GuestResponse)
def update_guest(
    guest_id: str,
    data: dict,
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
):
    """修改客人信息（入住状态、时间和胶囊号不可修改）"""
    try:
        return GuestResponse.model_validate(GuestService(repo).update(guest_id, data))
    except HostelError as e:
        raise http_error(e)
