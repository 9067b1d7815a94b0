"""
异常处理模块

定义业务异常和全局异常处理器
"""
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from loguru import logger

from .response import error_response


class AppException(Exception):
    """应用基础异常"""

    def __init__(
        self,
        message: str = "服务器内部错误",
        code: int = 500,
        data: Optional[dict] = None
    ):
        self.message = message
        self.code = code
        self.data = data
        super().__init__(self.message)


class NotFoundException(AppException):
    """资源不存在异常"""

    def __init__(self, message: str = "资源不存在"):
        super().__init__(message=message, code=404)


class BadRequestException(AppException):
    """请求参数错误异常"""

    def __init__(self, message: str = "请求参数错误", data: Optional[dict] = None):
        super().__init__(message=message, code=400, data=data)


class UnauthorizedException(AppException):
    """未认证异常"""

    def __init__(self, message: str = "未提供有效的认证信息"):
        super().__init__(message=message, code=401)


class ForbiddenException(AppException):
    """权限不足异常"""

    def __init__(self, message: str = "权限不足", data: Optional[dict] = None):
        super().__init__(message=message, code=403, data=data)


class ConflictException(AppException):
    """资源冲突异常"""

    def __init__(self, message: str = "资源已存在"):
        super().__init__(message=message, code=409)


class TooManyRequestsException(AppException):
    """请求过于频繁异常"""

    def __init__(self, message: str = "请求过于频繁", retry_after: int = 60):
        super().__init__(message=message, code=429, data={"retry_after": retry_after})
        self.retry_after = retry_after


class ServiceUnavailableException(AppException):
    """服务暂不可用异常"""

    def __init__(self, message: str = "服务暂不可用", data: Optional[dict] = None):
        super().__init__(message=message, code=503, data=data)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """业务异常，限流时附带 Retry-After 头"""
    logger.warning("业务异常 {} {}: {}", exc.code, request.url.path, exc.message)
    headers = None
    if isinstance(exc, TooManyRequestsException):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.code,
        content=error_response(message=exc.message, code=exc.code, data=exc.data),
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.warning("HTTP 异常 {} {}: {}", exc.status_code, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message=str(exc.detail), code=exc.status_code),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """参数校验失败统一返回 422，data.errors 为逐字段错误"""
    errors = jsonable_encoder(exc.errors())
    summary = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in errors
    )
    logger.warning("参数校验失败 {}: {}", request.url.path, summary)
    return JSONResponse(
        status_code=422,
        content=error_response(message="请求参数验证失败", code=422, data={"errors": errors}),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("未处理的异常 {}: {}", request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content=error_response(message="服务器内部错误", code=500),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
