"""
员工账号
只负责登录与提供审计字段中的操作人，不参与入住业务
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from hostel.models.entities import EmployeeRole
from hostel.models.tables import Employee
from hostel.security.auth import create_access_token, get_password_hash, verify_password

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    access_token: str
    employee: Employee
    token_type: str = "bearer"


class EmployeeService:
    """员工服务"""

    def __init__(self, db: Session):
        self.db = db

    def get_employee_by_username(self, username: str) -> Optional[Employee]:
        return self.db.execute(
            select(Employee).where(Employee.username == username)
        ).scalar_one_or_none()

    def create_employee(self, username: str, password: str, name: str,
                        role: EmployeeRole = EmployeeRole.STAFF) -> Employee:
        if self.get_employee_by_username(username) is not None:
            raise ValueError(f"用户名 '{username}' 已存在")
        account = Employee(username=username, name=name, role=role,
                           password_hash=get_password_hash(password))
        self.db.add(account)
        self.db.commit()
        self.db.refresh(account)
        logger.info(f"Employee {username} created ({role.value})")
        return account

    def authenticate(self, username: str, password: str) -> Optional[LoginResult]:
        """用户名或密码错误返回 None；账号停用抛出 ValueError"""
        account = self.get_employee_by_username(username)
        if account is None or not verify_password(password, account.password_hash):
            return None
        if not account.is_active:
            raise ValueError("账号已停用")
        return LoginResult(
            access_token=create_access_token(account.id, account.role),
            employee=account
        )
