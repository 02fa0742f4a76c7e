"""
员工登录路由
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from hostel.database import get_db
from hostel.models.schemas import EmployeeResponse, LoginRequest, LoginResponse
from hostel.models.tables import Employee
from hostel.security.auth import get_current_user
from hostel.services.employee_service import EmployeeService

router = APIRouter(prefix="/auth", tags=["认证"])


@router.post("/login", response_model=LoginResponse)
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """员工登录，返回 Bearer 令牌"""
    try:
        login_result = EmployeeService(db).authenticate(credentials.username, credentials.password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    if login_result is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="用户名或密码错误")
    return LoginResponse(
        access_token=login_result.access_token,
        token_type=login_result.token_type,
        employee=EmployeeResponse.model_validate(login_result.employee)
    )


@router.get("/me", response_model=EmployeeResponse)
def me(current_user: Employee = Depends(get_current_user)):
    return EmployeeResponse.model_validate(current_user)
