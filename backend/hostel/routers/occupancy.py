"""
入住率路由
"""
from fastapi import APIRouter, Depends

from hostel.models.schemas import OccupancyResponse
from hostel.models.tables import Employee
from hostel.repositories.base import HostelRepository
from hostel.routers.deps import get_repository
from hostel.security.auth import get_current_user
from hostel.services.occupancy_service import OccupancyService

router = APIRouter(prefix="/occupancy", tags=["入住率"])


@router.get("", response_model=OccupancyResponse)
def get_occupancy(
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
):
    return OccupancyResponse.model_validate(OccupancyService(repo).get_occupancy())
