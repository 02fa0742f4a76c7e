"""
员工认证
登录后签发 JWT；请求中的员工用户名即审计字段里的操作人
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Sequence

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from hostel.config import settings
from hostel.database import get_db
from hostel.models.entities import EmployeeRole
from hostel.models.tables import Employee

logger = logging.getLogger(__name__)

security = HTTPBearer()

_ENCODING = "utf-8"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode(_ENCODING), bcrypt.gensalt()).decode(_ENCODING)


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode(_ENCODING), password_hash.encode(_ENCODING))


def create_access_token(employee_id: int, role: EmployeeRole) -> str:
    """签发访问令牌，sub 为员工 id"""
    claims = {
        "sub": str(employee_id),
        "role": EmployeeRole(role).value,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected access token: {e}")
        raise _unauthorized("无效的认证凭证")


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> Employee:
    """当前登录员工；令牌无效、员工不存在或已停用时返回 401"""
    claims = decode_token(credentials.credentials)
    subject = claims.get("sub")
    if not subject or not subject.isdigit():
        raise _unauthorized("无效的认证凭证")

    employee = db.get(Employee, int(subject))
    if employee is None:
        raise _unauthorized("用户不存在")
    if not employee.is_active:
        raise _unauthorized("账号已停用")
    return employee


def require_role(allowed_roles: Sequence[EmployeeRole]):
    """限定角色的依赖"""
    async def check_role(current_user: Employee = Depends(get_current_user)) -> Employee:
        if current_user.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="权限不足")
        return current_user
    return check_role


require_admin = require_role((EmployeeRole.ADMIN,))
