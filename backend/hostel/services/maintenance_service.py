"""
维修服务
记录胶囊问题、解决问题，并列出有未解决问题的胶囊
"""
import logging
import uuid
from typing import Callable, List, Optional, Union

from hostel.clock import Clock, SystemClock
from hostel.models.entities import Capsule, CapsuleProblem, capsule_sort_key
from hostel.models.events import EventType, ProblemReportedData
from hostel.models.schemas import ProblemCreate, ProblemResolve
from hostel.repositories.base import HostelRepository
from hostel.services.errors import (
    CapsuleNotFound, ConflictError, ProblemNotFound, validate_payload
)
from hostel.services.event_bus import event_bus, Event

logger = logging.getLogger(__name__)


class MaintenanceService:
    """维修服务"""

    def __init__(self, repository: HostelRepository, clock: Clock = None,
                 event_publisher: Callable[[Event], None] = None):
        self.repo = repository
        self.clock = clock or SystemClock()
        self._publish_event = event_publisher or event_bus.publish

    def list_problems(self, capsule_number: Optional[str] = None,
                      is_resolved: Optional[bool] = None) -> List[CapsuleProblem]:
        return self.repo.list_problems(capsule_number=capsule_number, is_resolved=is_resolved)

    def list_active_problems(self) -> List[CapsuleProblem]:
        return self.repo.list_problems(is_resolved=False)

    def get_problem(self, problem_id: str) -> CapsuleProblem:
        problem = self.repo.get_problem(problem_id)
        if not problem:
            raise ProblemNotFound(problem_id)
        return problem

    def get_capsules_with_problems(self) -> List[Capsule]:
        """有未解决问题的胶囊"""
        with self.repo.atomic():
            numbers = {p.capsule_number for p in self.repo.list_problems(is_resolved=False)}
            capsules = [self.repo.get_capsule(n) for n in numbers]
        return sorted((c for c in capsules if c), key=lambda c: capsule_sort_key(c.number))

    def report_problem(self, data: Union[ProblemCreate, dict], reported_by: str) -> CapsuleProblem:
        data = validate_payload(ProblemCreate, data)
        with self.repo.atomic():
            if not self.repo.get_capsule(data.capsule_number):
                raise CapsuleNotFound(data.capsule_number)
            problem = self.repo.add_problem(CapsuleProblem(
                id=str(uuid.uuid4()),
                capsule_number=data.capsule_number,
                description=data.description.strip(),
                reported_by=reported_by,
                reported_at=self.clock.now()
            ))

        logger.info(f"Problem {problem.id} reported for capsule {problem.capsule_number}")
        self._publish_event(Event(
            event_type=EventType.PROBLEM_REPORTED,
            timestamp=problem.reported_at,
            data=ProblemReportedData(
                problem_id=problem.id,
                capsule_number=problem.capsule_number,
                description=problem.description,
                reported_by=reported_by
            ).to_dict(),
            source="maintenance_service"
        ))
        return problem

    def resolve_problem(self, problem_id: str, resolved_by: str,
                        data: Union[ProblemResolve, dict, None] = None) -> CapsuleProblem:
        data = validate_payload(ProblemResolve, data or {})
        with self.repo.atomic():
            problem = self.get_problem(problem_id)
            if problem.is_resolved:
                raise ConflictError("该问题已解决")
            problem.is_resolved = True
            problem.resolved_by = resolved_by
            problem.resolved_at = self.clock.now()
            if data.notes:
                problem.notes = data.notes
            problem = self.repo.save_problem(problem)
        logger.info(f"Problem {problem_id} resolved by {resolved_by}")
        return problem

    def delete_problem(self, problem_id: str) -> None:
        if not self.repo.delete_problem(problem_id):
            raise ProblemNotFound(problem_id)
