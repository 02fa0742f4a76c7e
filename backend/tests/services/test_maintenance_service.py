"""
维修服务测试
"""
import pytest

from hostel.models.events import EventType
from hostel.services.errors import (
    CapsuleNotFound, ConflictError, ProblemNotFound, ValidationError
)
from hostel.services.maintenance_service import MaintenanceService


@pytest.fixture
def service(memory_repo, frozen_clock, publisher):
    return MaintenanceService(memory_repo, frozen_clock, publisher)


def test_report_problem(service, frozen_clock, events):
    problem = service.report_problem({"capsule_number": "C03", "description": " 灯不亮 "}, "staff1")

    assert problem.description == "灯不亮"
    assert problem.reported_by == "staff1"
    assert problem.reported_at == frozen_clock.now()
    assert problem.is_resolved is False
    assert events[-1].event_type == EventType.PROBLEM_REPORTED
    assert events[-1].data["capsule_number"] == "C03"


def test_report_normalizes_capsule_number(service):
    problem = service.report_problem({"capsule_number": "c03", "description": "门锁坏了"}, "staff1")
    assert problem.capsule_number == "C03"


def test_report_for_unknown_capsule(service):
    with pytest.raises(CapsuleNotFound):
        service.report_problem({"capsule_number": "Z99", "description": "broken"}, "staff1")


def test_report_requires_description(service):
    with pytest.raises(ValidationError):
        service.report_problem({"capsule_number": "C03", "description": ""}, "staff1")


def test_resolve_problem(service, frozen_clock):
    problem = service.report_problem({"capsule_number": "C03", "description": "broken lock"}, "staff1")
    frozen_clock.advance(hours=3)

    resolved = service.resolve_problem(problem.id, "admin", {"notes": "replaced lock"})

    assert resolved.is_resolved is True
    assert resolved.resolved_by == "admin"
    assert resolved.resolved_at == frozen_clock.now()
    assert resolved.notes == "replaced lock"
    assert service.list_active_problems() == []


def test_resolve_twice(service):
    problem = service.report_problem({"capsule_number": "C03", "description": "broken lock"}, "staff1")
    service.resolve_problem(problem.id, "admin")
    with pytest.raises(ConflictError):
        service.resolve_problem(problem.id, "admin")


def test_capsules_with_problems(service):
    service.report_problem({"capsule_number": "C05", "description": "fan noisy"}, "staff1")
    service.report_problem({"capsule_number": "C02", "description": "curtain torn"}, "staff1")
    service.report_problem({"capsule_number": "C05", "description": "light flickers"}, "staff1")
    fixed = service.report_problem({"capsule_number": "C01", "description": "socket"}, "staff1")
    service.resolve_problem(fixed.id, "admin")

    assert [c.number for c in service.get_capsules_with_problems()] == ["C02", "C05"]


def test_list_problems_by_capsule(service):
    service.report_problem({"capsule_number": "C05", "description": "fan noisy"}, "staff1")
    service.report_problem({"capsule_number": "C02", "description": "curtain torn"}, "staff1")

    assert [p.description for p in service.list_problems(capsule_number="C05")] == ["fan noisy"]
    assert len(service.list_problems()) == 2


def test_delete_problem(service):
    problem = service.report_problem({"capsule_number": "C03", "description": "broken lock"}, "staff1")
    service.delete_problem(problem.id)
    with pytest.raises(ProblemNotFound):
        service.get_problem(problem.id)
    with pytest.raises(ProblemNotFound):
        service.delete_problem(problem.id)
