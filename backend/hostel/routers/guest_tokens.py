"""
自助入住链接管理路由（员工使用）
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request

from hostel.clock import Clock, get_clock
from hostel.config import settings
from hostel.models.entities import GuestToken
from hostel.models.schemas import GuestTokenCreate, GuestTokenResponse, PaginationParams, Page
from hostel.models.tables import Employee
from hostel.repositories.base import HostelRepository
from hostel.routers.deps import get_repository, get_pagination, http_error
from hostel.security.auth import get_current_user, require_admin
from hostel.services.errors import HostelError
from hostel.services.token_service import TokenService

router = APIRouter(prefix="/guest-tokens", tags=["自助入住链接"])


def build_link(token: str, request: Optional[Request] = None) -> str:
    """客人访问的自助入住链接"""
    base = settings.PUBLIC_BASE_URL or (str(request.base_url) if request else "")
    return f"{base.rstrip('/')}/guest-checkin/{token}"


def _response(record: GuestToken, request: Request) -> GuestTokenResponse:
    response = GuestTokenResponse.model_validate(record)
    response.link = build_link(record.token, request)
    return response


@router.post("", response_model=GuestTokenResponse, status_code=201)
def issue_token(
    data: GuestTokenCreate,
    request: Request,
    repo: HostelRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user)
):
    """生成自助入住链接"""
    try:
        record = TokenService(repo, clock).issue(data, current_user.username)
    except HostelError as e:
        raise http_error(e)
    return _response(record, request)


@router.get("", response_model=Page[GuestTokenResponse])
def list_active_tokens(
    request: Request,
    pagination: PaginationParams = Depends(get_pagination),
    repo: HostelRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user)
):
    """有效的链接（未使用、未过期）"""
    page = TokenService(repo, clock).list_active(pagination)
    return {
        "data": [_response(t, request) for t in page.data],
        "pagination": page.pagination,
    }


@router.delete("/{token}")
def revoke_token(
    token: str,
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
):
    """作废链接"""
    try:
        TokenService(repo).revoke(token)
        return {"message": "链接已作废"}
    except HostelError as e:
        raise http_error(e)


@router.post("/sweep")
def sweep_expired_tokens(
    repo: HostelRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    current_user: Employee = Depends(require_admin)
):
    """立即清理过期链接"""
    return {"deleted": TokenService(repo, clock).sweep_expired()}
