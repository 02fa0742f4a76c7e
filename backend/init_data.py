"""
初始化数据脚本
创建：胶囊床位、员工账号、系统设置

胶囊布局（共 22 个）：
  后区 back    C1-C6
  中区 middle  C25-C26
  前区 front   C11-C24

默认账号（密码均为 123456）：
  admin     管理员
  front1    前台
"""
import sys
sys.path.insert(0, '.')

from hostel.database import SessionLocal, init_db
from hostel.models.entities import Capsule, CapsuleSection, EmployeeRole
from hostel.repositories.sql import SqlAlchemyRepository
from hostel.services.employee_service import EmployeeService
from hostel.services.settings_service import SettingsService, GUEST_TOKEN_EXPIRATION_HOURS

CAPSULE_LAYOUT = (
    (CapsuleSection.BACK, range(1, 7)),
    (CapsuleSection.MIDDLE, range(25, 27)),
    (CapsuleSection.FRONT, range(11, 25)),
)


def init_capsules(repo):
    """初始化胶囊，已存在的跳过"""
    created = 0
    for section, numbers in CAPSULE_LAYOUT:
        for n in numbers:
            number = f"C{n}"
            if repo.get_capsule(number):
                continue
            repo.add_capsule(Capsule(number=number, section=section))
            created += 1
    print(f"  胶囊: 新增 {created} 个，共 {repo.count_capsules()} 个")


def init_employees(db):
    service = EmployeeService(db)
    for username, name, role in (
        ("admin", "管理员", EmployeeRole.ADMIN),
        ("front1", "前台", EmployeeRole.STAFF),
    ):
        if service.get_employee_by_username(username):
            continue
        service.create_employee(username, "123456", name, role)
        print(f"  员工: {username} ({role.value})")


def init_settings(repo):
    service = SettingsService(repo)
    if not repo.get_setting(GUEST_TOKEN_EXPIRATION_HOURS):
        service.set_setting(GUEST_TOKEN_EXPIRATION_HOURS, 24, "system",
                            description="自助入住链接默认有效期（小时）")


def main():
    print("初始化数据库...")
    init_db()
    db = SessionLocal()
    try:
        repo = SqlAlchemyRepository(db)
        init_capsules(repo)
        init_employees(db)
        init_settings(repo)
        print("初始化完成")
    finally:
        db.close()


if __name__ == "__main__":
    main()
