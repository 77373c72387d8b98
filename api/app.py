"""
FastAPI application for the quote voting system.
Main application entry point for the API server.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from utils import (
    api_logger,
    voting_metrics,
    config_manager,
    initialize_logging,
    UnifiedConfigManager,
    resolve_path,
    __version__
)

from .dependencies import VoteServices, build_services
from .middleware import setup_middleware, setup_exception_handlers
from .models import HealthResponse
from .routes import router


def create_app(services: Optional[VoteServices] = None,
               config: UnifiedConfigManager = config_manager) -> FastAPI:
    """创建应用

    传入 services 时直接使用；否则在启动阶段根据配置创建。
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """应用生命周期管理"""
        api_logger.info("[API] Starting Quote Voting API...")
        owns_services = app.state.services is None
        if owns_services:
            app.state.services = build_services(config)

        yield

        api_logger.info("[API] Shutting down Quote Voting API...")
        if owns_services and app.state.services is not None:
            app.state.services.close()

    app = FastAPI(
        title="Quote Voting API",
        description="Browse, search and vote on quotes with per-session vote limits",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )
    app.state.services = services

    setup_middleware(app, config)
    setup_exception_handlers(app)

    api_config = config.get_api_config()
    app.include_router(router, prefix=api_config.prefix)

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check():
        """健康检查端点"""
        current = app.state.services
        return HealthResponse(
            status="healthy" if current is not None else "starting",
            timestamp=datetime.now(),
            version=__version__,
            quotes=current.store.count() if current is not None else 0,
            active_sessions=current.ledger.active_sessions() if current is not None else 0,
            vote_stats=voting_metrics.snapshot()
        )

    # 配置了前端目录时由静态文件接管根路径
    static_dir = resolve_path(api_config.static_dir) if api_config.static_dir else None
    if static_dir is not None and static_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
        api_logger.info(f"[API] Serving static files from {static_dir}")
    else:
        @app.get("/", tags=["System"])
        async def root():
            """根路径"""
            return {
                "message": "Quote Voting API",
                "version": __version__,
                "docs": "/docs",
                "status": "running"
            }

    return app


app = create_app()


if __name__ == "__main__":
    initialize_logging()
    api_config = config_manager.get_api_config()
    api_logger.info(f"[API] Starting server on {api_config.host}:{api_config.port}")

    if api_config.reload:
        uvicorn.run("api.app:app", host=api_config.host, port=api_config.port,
                    reload=True, log_level="info")
    else:
        uvicorn.run(app, host=api_config.host, port=api_config.port, log_level="info")
