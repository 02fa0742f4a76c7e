"""
管理员通知路由
"""
from typing import List

from fastapi import APIRouter, Depends

from hostel.models.schemas import NotificationResponse
from hostel.models.tables import Employee
from hostel.repositories.base import HostelRepository
from hostel.routers.deps import get_repository, http_error
from hostel.security.auth import require_admin
from hostel.services.errors import HostelError
from hostel.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["通知"])


@router.get("", response_model=List[NotificationResponse])
def list_notifications(
    unread_only: bool = False,
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(require_admin)
):
    notifications = NotificationService(repo).list_notifications(unread_only)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.get("/unread-count")
def unread_count(
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(require_admin)
):
    return {"count": NotificationService(repo).unread_count()}


@router.post("/read-all")
def mark_all_read(
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(require_admin)
):
    return {"updated": NotificationService(repo).mark_all_read()}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: str,
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(require_admin)
):
    try:
        return NotificationResponse.model_validate(NotificationService(repo).mark_read(notification_id))
    except HostelError as e:
        raise http_error(e)
