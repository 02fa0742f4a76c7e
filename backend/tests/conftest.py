"""
Pytest 配置和共享 fixtures
"""
import pytest
from datetime import datetime
from typing import List
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from hostel.clock import FrozenClock, get_clock
from hostel.database import Base, get_db
from hostel.models import tables  # noqa: F401
from hostel.models.entities import Capsule, CapsuleSection, EmployeeRole
from hostel.models.tables import Employee
from hostel.repositories.memory import InMemoryRepository
from hostel.repositories.sql import SqlAlchemyRepository
from hostel.security.auth import get_password_hash, create_access_token
from hostel.services.event_bus import Event, event_bus
from hostel.services.event_handlers import EventHandlers
from hostel.main import app

# 标准胶囊布局：偶数号为下铺
STANDARD_CAPSULES = [
    ("C01", CapsuleSection.FRONT),
    ("C02", CapsuleSection.FRONT),
    ("C03", CapsuleSection.MIDDLE),
    ("C04", CapsuleSection.MIDDLE),
    ("C05", CapsuleSection.BACK),
    ("C06", CapsuleSection.BACK),
]


def seed_capsules(repo, layout=STANDARD_CAPSULES) -> List[Capsule]:
    return [repo.add_capsule(Capsule(number=n, section=s)) for n, s in layout]


def checkin_payload(capsule_number: str, name: str = "Ahmad", **extra) -> dict:
    payload = {
        "capsule_number": capsule_number,
        "name": name,
        "payment_amount": "50.00",
        "payment_method": "cash",
        "payment_collector": "admin",
    }
    payload.update(extra)
    return payload


@pytest.fixture(autouse=True)
def reset_event_bus():
    """每个用例前后清空全局事件总线"""
    event_bus.clear_subscribers()
    event_bus.clear_history()
    yield
    event_bus.clear_subscribers()
    event_bus.clear_history()


@pytest.fixture
def frozen_clock():
    return FrozenClock(datetime(2025, 1, 15, 10, 0, 0))


@pytest.fixture
def events():
    """收集服务发布的事件"""
    return []


@pytest.fixture
def publisher(events):
    def publish(event: Event) -> None:
        events.append(event)
    return publish


# ============== 仓储 Fixtures ==============

@pytest.fixture
def memory_repo():
    repo = InMemoryRepository()
    seed_capsules(repo)
    return repo


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """创建数据库会话"""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def sql_repo(db_session):
    repo = SqlAlchemyRepository(db_session)
    seed_capsules(repo)
    return repo


# ============== API Fixtures ==============

@pytest.fixture(scope="function")
def client(db_session, session_factory, frozen_clock):
    """创建测试客户端（不触发 lifespan，事件处理器绑定测试数据库）"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: frozen_clock

    handlers = EventHandlers(repository_factory=lambda: SqlAlchemyRepository(session_factory()))
    handlers.register_handlers()

    yield TestClient(app)

    handlers.unregister_handlers()
    app.dependency_overrides.clear()


@pytest.fixture
def seeded_capsules(db_session):
    return seed_capsules(SqlAlchemyRepository(db_session))


def _create_employee(db_session, username: str, role: EmployeeRole) -> Employee:
    employee = Employee(
        username=username,
        password_hash=get_password_hash("123456"),
        name=username,
        role=role,
        is_active=True
    )
    db_session.add(employee)
    db_session.commit()
    db_session.refresh(employee)
    return employee


@pytest.fixture
def admin_token(db_session):
    admin = _create_employee(db_session, "admin", EmployeeRole.ADMIN)
    return create_access_token(admin.id, admin.role)


@pytest.fixture
def staff_token(db_session):
    staff = _create_employee(db_session, "staff1", EmployeeRole.STAFF)
    return create_access_token(staff.id, staff.role)


@pytest.fixture
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def staff_headers(staff_token):
    return {"Authorization": f"Bearer {staff_token}"}


@pytest.fixture
def payload():
    """入住请求体构造函数"""
    return checkin_payload
