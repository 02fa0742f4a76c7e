"""
入住率统计测试
"""
import pytest

from hostel.repositories.memory import InMemoryRepository
from hostel.services.capsule_service import CapsuleService
from hostel.services.guest_service import GuestService
from hostel.services.occupancy_service import OccupancyService, round_half_up


@pytest.mark.parametrize("value,expected", [
    (16.666, 17),
    (12.5, 13),
    (12.49, 12),
    (0.0, 0),
    (100.0, 100),
])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_empty_registry():
    occupancy = OccupancyService(InMemoryRepository()).get_occupancy()
    assert occupancy.total == 0
    assert occupancy.occupied == 0
    assert occupancy.available == 0
    assert occupancy.occupancy_rate == 0


def test_one_of_six(memory_repo, frozen_clock, payload):
    GuestService(memory_repo, frozen_clock).check_in(payload("C01"), "admin")

    occupancy = OccupancyService(memory_repo).get_occupancy()

    assert occupancy.total == 6
    assert occupancy.occupied == 1
    assert occupancy.available == 5
    assert occupancy.occupancy_rate == 17


def test_one_of_eight(memory_repo, frozen_clock, payload):
    capsules = CapsuleService(memory_repo)
    capsules.create_capsule({"number": "C07", "section": "back"})
    capsules.create_capsule({"number": "C08", "section": "back"})
    GuestService(memory_repo, frozen_clock).check_in(payload("C08"), "admin")

    assert OccupancyService(memory_repo).get_occupancy().occupancy_rate == 13


def test_totals_add_up(memory_repo, frozen_clock, payload):
    guests = GuestService(memory_repo, frozen_clock)
    first = guests.check_in(payload("C01"), "admin")
    guests.check_in(payload("C02", name="Budi"), "admin")
    guests.check_in(payload("C03", name="Chen"), "admin")
    guests.check_out(first.id)

    occupancy = OccupancyService(memory_repo).get_occupancy()

    assert occupancy.occupied == 2
    assert occupancy.occupied + occupancy.available == occupancy.total


def test_total_follows_registry(memory_repo):
    CapsuleService(memory_repo).delete_capsule("C06")
    assert OccupancyService(memory_repo).get_occupancy().total == 5
