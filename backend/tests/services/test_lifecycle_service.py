"""
入住生命周期编排测试
"""
import threading
import pytest

from hostel.models.entities import CheckinSource, CleaningStatus
from hostel.models.events import EventType
from hostel.repositories.memory import InMemoryRepository
from hostel.services.errors import CapsuleUnavailable, GuestNotFound, TokenInvalid
from hostel.services.lifecycle_service import CLEANING_REVIEW_WARNING, LifecycleService
from hostel.services.occupancy_service import OccupancyService


@pytest.fixture
def lifecycle(memory_repo, frozen_clock, publisher):
    return LifecycleService(memory_repo, frozen_clock, publisher)


def _event_types(events):
    return [e.event_type for e in events]


class TestStaffFlow:
    """前台入住到退房"""

    def test_check_in_then_check_out(self, lifecycle, frozen_clock, payload, events):
        guest = lifecycle.check_in(payload("C01"), "admin")
        assert "C01" not in [c.number for c in lifecycle.capsule_service.get_available_capsules()]

        frozen_clock.advance(hours=22)
        result = lifecycle.check_out(guest.id, "admin")

        assert result.guest.is_checked_in is False
        assert result.guest.checkout_time == frozen_clock.now()
        assert result.cleaning_flag_updated is True
        assert result.warning is None
        capsule = lifecycle.capsule_service.get_capsule("C01")
        assert capsule.cleaning_status == CleaningStatus.TO_BE_CLEANED
        assert _event_types(events) == [
            EventType.GUEST_CHECKED_IN,
            EventType.CAPSULE_CLEANING_CHANGED,
            EventType.GUEST_CHECKED_OUT,
        ]

    def test_capsule_back_in_service_after_cleaning(self, lifecycle, payload):
        guest = lifecycle.check_in(payload("C01"), "admin")
        lifecycle.check_out(guest.id)

        assert "C01" not in [c.number for c in lifecycle.capsule_service.get_available_capsules()]
        assert [c.number for c in lifecycle.capsule_service.get_uncleaned_capsules()] == ["C01"]

        lifecycle.mark_cleaned("C01", "staff1")
        assert "C01" in [c.number for c in lifecycle.capsule_service.get_available_capsules()]

        again = lifecycle.check_in(payload("C01", name="Budi"), "admin")
        assert again.capsule_number == "C01"

    def test_check_in_dirty_capsule_refused(self, lifecycle, payload):
        guest = lifecycle.check_in(payload("C01"), "admin")
        lifecycle.check_out(guest.id)
        with pytest.raises(CapsuleUnavailable):
            lifecycle.check_in(payload("C01", name="Budi"), "admin")

    def test_double_checkout(self, lifecycle, payload):
        guest = lifecycle.check_in(payload("C01"), "admin")
        lifecycle.check_out(guest.id)
        with pytest.raises(GuestNotFound):
            lifecycle.check_out(guest.id)

    def test_occupancy_follows_lifecycle(self, lifecycle, memory_repo, payload):
        guest = lifecycle.check_in(payload("C01"), "admin")
        assert OccupancyService(memory_repo).get_occupancy().occupied == 1
        lifecycle.check_out(guest.id)
        assert OccupancyService(memory_repo).get_occupancy().occupied == 0


class TestDegradedCheckout:
    """清洁标记写入失败"""

    class FlakyCapsuleRepository(InMemoryRepository):
        def save_capsule(self, capsule):
            raise RuntimeError("disk full")

    def test_checkout_survives_cleaning_failure(self, memory_repo, frozen_clock, payload, events):
        repo = self.FlakyCapsuleRepository()
        for capsule in memory_repo.list_capsules():
            repo.add_capsule(capsule)
        lifecycle = LifecycleService(repo, frozen_clock, lambda e: events.append(e))
        guest = lifecycle.check_in(payload("C01"), "admin")

        result = lifecycle.check_out(guest.id, "admin")

        assert result.guest.is_checked_in is False
        assert result.cleaning_flag_updated is False
        assert result.warning == CLEANING_REVIEW_WARNING
        assert repo.get_guest(guest.id).is_checked_in is False
        assert repo.get_capsule("C01").cleaning_status == CleaningStatus.CLEANED

        review = [e for e in events if e.event_type == EventType.CAPSULE_CLEANING_REVIEW_REQUIRED]
        assert len(review) == 1
        assert review[0].data["capsule_number"] == "C01"
        assert events[-1].event_type == EventType.GUEST_CHECKED_OUT
        assert events[-1].data["cleaning_flag_updated"] is False


class TestSelfCheckIn:
    """自助入住"""

    def test_redeem_specific_capsule(self, lifecycle, events):
        token = lifecycle.token_service.issue({"capsule_number": "C04"}, "admin")

        guest = lifecycle.self_check_in(token.token, {"name": "Siti", "phone": "0123"})

        assert guest.capsule_number == "C04"
        assert guest.checkin_source == CheckinSource.SELF
        assert events[-1].event_type == EventType.GUEST_SELF_CHECKED_IN
        assert events[-1].data["source"] == "self"
        with pytest.raises(TokenInvalid):
            lifecycle.self_check_in(token.token, {"name": "Siti"})

    def test_female_falls_back_to_front_bottom(self, lifecycle):
        for number in ("C03", "C04", "C05", "C06"):
            lifecycle.capsule_service.update_capsule(number, {"is_available": False})
        token = lifecycle.token_service.issue({"auto_assign": True}, "admin")

        guest = lifecycle.self_check_in(token.token, {"name": "Siti", "gender": "female"})

        assert guest.capsule_number == "C02"

    def test_self_checked_in_guest_checks_out_normally(self, lifecycle):
        token = lifecycle.token_service.issue({"auto_assign": True}, "admin")
        guest = lifecycle.self_check_in(token.token, {"name": "Ahmad", "gender": "male"})

        result = lifecycle.check_out(guest.id)

        assert result.cleaning_flag_updated is True
        assert lifecycle.capsule_service.get_capsule(guest.capsule_number).cleaning_status == \
            CleaningStatus.TO_BE_CLEANED

    def test_staff_and_self_check_in_compete(self, lifecycle, payload):
        token = lifecycle.token_service.issue({"capsule_number": "C05"}, "admin")
        lifecycle.check_in(payload("C05"), "admin")

        with pytest.raises(CapsuleUnavailable):
            lifecycle.self_check_in(token.token, {"name": "Siti"})


class TestConcurrency:
    """并发入住同一胶囊"""

    def test_single_winner_per_capsule(self, lifecycle, memory_repo, payload):
        barrier = threading.Barrier(10)
        winners, losers = [], []

        def attempt(i):
            barrier.wait()
            try:
                winners.append(lifecycle.check_in(payload("C01", name=f"guest-{i}"), "admin"))
            except CapsuleUnavailable:
                losers.append(i)

        threads = [threading.Thread(target=attempt, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(winners) == 1
        assert len(losers) == 9
        assert len(memory_repo.find_guests(is_checked_in=True, capsule_number="C01")) == 1
