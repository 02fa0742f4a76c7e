"""
客人自助入住路由（公开，无需登录）
链接无效时统一返回 410，不区分过期、已使用或不存在
"""
from fastapi import APIRouter, Depends

from hostel.clock import Clock, get_clock
from hostel.models.schemas import (
    SelfCheckIn, TokenValidationResponse, GuestResponse, SelfCheckInGuestResponse
)
from hostel.repositories.base import HostelRepository
from hostel.routers.deps import get_repository, http_error
from hostel.services.errors import HostelError
from hostel.services.lifecycle_service import LifecycleService
from hostel.services.token_service import TokenService

router = APIRouter(prefix="/guest-checkin", tags=["自助入住"])


@router.get("/{token}", response_model=TokenValidationResponse)
def validate_token(
    token: str,
    repo: HostelRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock)
):
    """校验链接并返回预填信息"""
    try:
        record = TokenService(repo, clock).validate(token)
    except HostelError as e:
        raise http_error(e)
    return TokenValidationResponse.model_validate(record)


@router.post("/{token}", response_model=GuestResponse, status_code=201)
def self_check_in(
    token: str,
    data: SelfCheckIn,
    repo: HostelRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock)
):
    """客人提交信息完成入住"""
    try:
        guest = LifecycleService(repo, clock).self_check_in(token, data)
    except HostelError as e:
        raise http_error(e)
    return GuestResponse.model_validate(guest)


@router.get("/{token}/guest", response_model=SelfCheckInGuestResponse)
def get_self_checked_in_guest(
    token: str,
    repo: HostelRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock)
):
    """查看已提交的入住信息"""
    service = TokenService(repo, clock)
    try:
        guest = service.get_guest_for_token(token)
    except HostelError as e:
        raise http_error(e)
    response = SelfCheckInGuestResponse.model_validate(guest)
    response.can_edit = service.can_edit(guest)
    return response


@router.put("/{token}/guest", response_model=GuestResponse)
def edit_self_checked_in_guest(
    token: str,
    data: SelfCheckIn,
    repo: HostelRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock)
):
    """入住后一小时内可修改"""
    try:
        guest = TokenService(repo, clock).edit_self_check_in(token, data)
    except HostelError as e:
        raise http_error(e)
    return GuestResponse.model_validate(guest)
