"""
统一响应模块

所有接口返回 {success, code, message, data} 信封
"""
import math
from typing import Any, Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class ResponseModel(BaseModel, Generic[T]):
    """
    统一响应模型

    示例:
        {
            "success": true,
            "code": 200,
            "message": "操作成功",
            "data": {...}
        }
    """
    success: bool = True
    code: int = 200
    message: str = "操作成功"
    data: Optional[T] = None


class PagedData(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    page_size: int
    pages: int


class PagedResponseModel(BaseModel, Generic[T]):
    success: bool = True
    code: int = 200
    message: str = "查询成功"
    data: Optional[PagedData[T]] = None


MessageResponse = ResponseModel[Any]
DictResponse = ResponseModel[Dict[str, Any]]


def _envelope(success: bool, code: int, message: str, data: Any) -> dict:
    return {"success": success, "code": code, "message": message, "data": data}


def success_response(data: Any = None, message: str = "操作成功", code: int = 200) -> dict:
    return _envelope(True, code, message, data)


def error_response(message: str = "操作失败", code: int = 400, data: Any = None) -> dict:
    """错误响应，code 与 HTTP 状态码一致"""
    return _envelope(False, code, message, data)


def paged_response(
    items: list,
    total: int,
    page: int,
    page_size: int,
    message: str = "查询成功"
) -> dict:
    """分页响应，pages 向上取整"""
    pages = math.ceil(total / page_size) if page_size > 0 else 0
    data = {"items": items, "total": total, "page": page, "page_size": page_size, "pages": pages}
    return success_response(data=data, message=message)
