"""
维修管理路由
"""
from typing import List, Optional

from fastapi import APIRouter, Depends

from hostel.clock import Clock, get_clock
from hostel.models.schemas import ProblemCreate, ProblemResolve, ProblemResponse, CapsuleResponse
from hostel.models.tables import Employee
from hostel.repositories.base import HostelRepository
from hostel.routers.deps import get_repository, http_error
from hostel.security.auth import get_current_user, require_admin
from hostel.services.errors import HostelError
from hostel.services.maintenance_service import MaintenanceService

router = APIRouter(prefix="/maintenance", tags=["维修管理"])


@router.get("/problems", response_model=List[ProblemResponse])
def list_problems(
    capsule_number: Optional[str] = None,
    is_resolved: Optional[bool] = None,
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
):
    problems = MaintenanceService(repo).list_problems(capsule_number, is_resolved)
    return [ProblemResponse.model_validate(p) for p in problems]


@router.get("/problems/active", response_model=List[ProblemResponse])
def list_active_problems(
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
):
    """未解决的问题"""
    return [ProblemResponse.model_validate(p) for p in MaintenanceService(repo).list_active_problems()]


@router.get("/capsules", response_model=List[CapsuleResponse])
def list_capsules_with_problems(
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(get_current_user)
):
    """有未解决问题的胶囊"""
    return [CapsuleResponse.model_validate(c) for c in MaintenanceService(repo).get_capsules_with_problems()]


@router.post("/problems", response_model=ProblemResponse, status_code=201)
def report_problem(
    data: ProblemCreate,
    repo: HostelRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user)
):
    """报修"""
    try:
        problem = MaintenanceService(repo, clock).report_problem(data, current_user.username)
        return ProblemResponse.model_validate(problem)
    except HostelError as e:
        raise http_error(e)


@router.post("/problems/{problem_id}/resolve", response_model=ProblemResponse)
def resolve_problem(
    problem_id: str,
    data: ProblemResolve,
    repo: HostelRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    current_user: Employee = Depends(get_current_user)
):
    """标记问题已解决"""
    try:
        problem = MaintenanceService(repo, clock).resolve_problem(problem_id, current_user.username, data)
        return ProblemResponse.model_validate(problem)
    except HostelError as e:
        raise http_error(e)


@router.delete("/problems/{problem_id}")
def delete_problem(
    problem_id: str,
    repo: HostelRepository = Depends(get_repository),
    current_user: Employee = Depends(require_admin)
):
    try:
        MaintenanceService(repo).delete_problem(problem_id)
        return {"message": "删除成功"}
    except HostelError as e:
        raise http_error(e)
