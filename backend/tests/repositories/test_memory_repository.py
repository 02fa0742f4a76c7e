"""
内存仓储测试
"""
import pytest
from datetime import datetime, timedelta

from hostel.models.entities import Capsule, CapsuleSection, Guest, GuestToken, PaymentMethod
from hostel.repositories.memory import InMemoryRepository
from hostel.services.errors import CapsuleOccupiedError

NOW = datetime(2025, 1, 15, 10, 0, 0)


def _guest(guest_id, capsule_number="C01"):
    return Guest(
        id=guest_id,
        name=f"guest-{guest_id}",
        capsule_number=capsule_number,
        checkin_time=NOW,
        payment_method=PaymentMethod.CASH,
        payment_collector="admin",
    )


@pytest.fixture
def repo():
    repo = InMemoryRepository()
    repo.add_capsule(Capsule(number="C01", section=CapsuleSection.FRONT))
    repo.add_capsule(Capsule(number="C02", section=CapsuleSection.FRONT))
    return repo


def test_returned_objects_are_copies(repo):
    capsule = repo.get_capsule("C01")
    capsule.is_available = False
    assert repo.get_capsule("C01").is_available is True


def test_duplicate_capsule(repo):
    with pytest.raises(ValueError):
        repo.add_capsule(Capsule(number="C01", section=CapsuleSection.BACK))


def test_one_active_guest_per_capsule(repo):
    repo.add_checked_in_guest(_guest("g1"))
    with pytest.raises(CapsuleOccupiedError):
        repo.add_checked_in_guest(_guest("g2"))
    assert repo.occupied_capsule_numbers() == {"C01"}


def test_capsule_free_after_checkout(repo):
    repo.add_checked_in_guest(_guest("g1"))
    assert repo.check_out_guest("g1", NOW + timedelta(hours=1)).is_checked_in is False
    assert repo.check_out_guest("g1", NOW + timedelta(hours=2)) is None

    repo.add_checked_in_guest(_guest("g2"))
    assert repo.count_checked_in_guests() == 1


def test_save_guest_cannot_change_occupancy(repo):
    guest = repo.add_checked_in_guest(_guest("g1"))
    guest.is_checked_in = False
    guest.capsule_number = "C02"
    guest.phone = "0123"

    saved = repo.save_guest(guest)

    assert saved.is_checked_in is True
    assert saved.capsule_number == "C01"
    assert saved.phone == "0123"
    assert repo.occupied_capsule_numbers() == {"C01"}


def test_mark_token_used_once(repo):
    repo.add_token(GuestToken(token="t1", expires_at=NOW + timedelta(hours=1),
                              created_by="admin", created_at=NOW))
    assert repo.mark_token_used("t1", NOW) is True
    assert repo.mark_token_used("t1", NOW) is False
    assert repo.mark_token_used("missing", NOW) is False


def test_delete_expired_tokens(repo):
    repo.add_token(GuestToken(token="old", expires_at=NOW, created_by="admin", created_at=NOW))
    repo.add_token(GuestToken(token="new", expires_at=NOW + timedelta(seconds=1),
                              created_by="admin", created_at=NOW))

    assert repo.delete_expired_tokens(NOW) == 1
    assert [t.token for t in repo.list_tokens()] == ["new"]


def test_atomic_rolls_back_on_error(repo):
    repo.add_token(GuestToken(token="t1", expires_at=NOW + timedelta(hours=1),
                              created_by="admin", created_at=NOW))

    with pytest.raises(RuntimeError):
        with repo.atomic():
            repo.mark_token_used("t1", NOW)
            with repo.atomic():
                repo.add_checked_in_guest(_guest("g1"))
            raise RuntimeError("boom")

    assert repo.get_token("t1").is_used is False
    assert repo.get_guest("g1") is None
    assert repo.occupied_capsule_numbers() == set()


def test_atomic_keeps_writes_on_success(repo):
    with repo.atomic():
        repo.add_checked_in_guest(_guest("g1"))
    assert repo.occupied_capsule_numbers() == {"C01"}
