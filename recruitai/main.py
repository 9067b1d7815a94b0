"""
FastAPI 主应用入口

RecruitAI 视频面试招聘平台后端
"""
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.routing import APIRoute
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from recruitai.core.config import settings
from recruitai.core.database import init_db, close_db
from recruitai.core.optimization import api_optimization
from recruitai.core.response import success_response, DictResponse
from recruitai.core.exceptions import register_exception_handlers
from recruitai.api import api_router
from recruitai.services.data_sync import data_sync_service
from recruitai.services.llm_client import get_llm_client

APP_VERSION = "1.0.0"
STARTED_AT = time.monotonic()


def custom_generate_unique_id(route: APIRoute) -> str:
    """
    使用路由函数名作为 operationId
    """
    return route.name


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理

    启动时初始化数据库和后台任务，关闭时依次停止
    """
    logger.info("启动应用: {}", settings.app_name)
    logger.info("环境: {}", settings.app_env)
    logger.info("调试模式: {}", settings.debug)

    await init_db()
    logger.info("数据库初始化完成")

    api_optimization.start(
        cache_interval=settings.cache_sweep_interval,
        rate_limit_interval=settings.rate_limit_sweep_interval,
    )
    if settings.sync_auto_enabled:
        data_sync_service.start(settings.sync_interval_minutes)

    yield

    await data_sync_service.stop()
    await api_optimization.stop()
    await close_db()
    logger.info("应用已关闭")


def create_app() -> FastAPI:
    """
    创建 FastAPI 应用实例
    """
    app = FastAPI(
        title=settings.app_name,
        description="RecruitAI 视频面试招聘平台 API",
        version=APP_VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        generate_unique_id_function=custom_generate_unique_id,
    )

    register_exception_handlers(app)

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get(f"{settings.api_prefix}/health", tags=["系统"], response_model=DictResponse)
    async def health_check():
        """健康检查，附带优化组件和 LLM 状态"""
        return success_response(data={
            "status": "healthy",
            "uptime": round(time.monotonic() - STARTED_AT, 1),
            "optimization": api_optimization.get_status(),
            "llm": get_llm_client().get_status(),
        })

    @app.get("/", tags=["系统"], response_model=DictResponse)
    async def root():
        """API 根路径"""
        return success_response(data={
            "name": settings.app_name,
            "version": APP_VERSION,
            "docs": "/docs" if settings.debug else None,
        })

    # CORS 需最后添加，使其最先执行
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


# 创建应用实例
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "recruitai.main:app",
        host="127.0.0.1",
        port=8000,
        reload=settings.debug,
    )
