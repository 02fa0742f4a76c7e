"""
路由公共依赖
"""
from typing import Type

from fastapi import Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from hostel.database import get_db
from hostel.models.schemas import PaginationParams, Page
from hostel.repositories.base import HostelRepository
from hostel.repositories.sql import SqlAlchemyRepository
from hostel.services.errors import HostelError


def get_repository(db: Session = Depends(get_db)) -> HostelRepository:
    """依赖注入：获取仓储（绑定当前请求的数据库会话）"""
    return SqlAlchemyRepository(db)


def get_pagination(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500)
) -> PaginationParams:
    return PaginationParams(page=page, limit=limit)


def http_error(e: HostelError) -> HTTPException:
    """业务异常 -> HTTP 错误"""
    if e.details:
        return HTTPException(status_code=e.status_code, detail={"message": e.message, "errors": e.details})
    return HTTPException(status_code=e.status_code, detail=e.message)


def to_page(page: Page, model: Type[BaseModel]) -> dict:
    """把领域对象分页结果转换为响应模型分页"""
    return {
        "data": [model.model_validate(item) for item in page.data],
        "pagination": page.pagination,
    }
