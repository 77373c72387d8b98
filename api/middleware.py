"""
Middleware for the quote voting API.
Provides CORS, sessions, logging, error handling and security headers.
"""

import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from utils import api_logger, UnifiedConfigManager, SecurityHeaders, SecurityValidator
from utils.exceptions import (
    VoteSystemError,
    QuoteNotFoundError,
    AlreadyVotedError,
    LimitReachedError,
    RateLimitedError,
    ValidationError,
    ErrorCodes,
    create_error_response
)

# 面向用户的业务结果 -> HTTP 状态码
DOMAIN_STATUS_CODES = (
    (QuoteNotFoundError, 404),
    (AlreadyVotedError, 409),
    (LimitReachedError, 403),
    (RateLimitedError, 429),
    (ValidationError, 400),
)

GENERIC_ERROR = "Failed to process request"


class LoggingMiddleware(BaseHTTPMiddleware):
    """日志中间件"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        api_logger.debug(f"[API] {request.method} {request.url.path}")

        response = await call_next(request)

        process_time = time.time() - start_time
        api_logger.info(
            f"[API] {request.method} {request.url.path} - {response.status_code} - {process_time:.3f}s"
        )
        response.headers["X-Process-Time"] = f"{process_time:.6f}"
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """兜底错误处理中间件，未处理的异常统一返回 500"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            api_logger.error(f"[API] Unexpected error on {request.method} {request.url.path}: {e}",
                             exc_info=True)
            return JSONResponse(
                status_code=500,
                content={"error": GENERIC_ERROR, "error_code": "INTERNAL_ERROR"}
            )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """安全头中间件"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in SecurityHeaders.get_security_headers().items():
            response.headers.setdefault(name, value)
        return response


async def vote_system_error_handler(request: Request, exc: VoteSystemError) -> JSONResponse:
    """将业务异常转换为 JSON 错误响应"""
    for error_type, status_code in DOMAIN_STATUS_CODES:
        if isinstance(exc, error_type):
            api_logger.info(f"[API] {request.method} {request.url.path} -> {status_code} {exc.error_code}")
            headers = None
            if isinstance(exc, RateLimitedError) and "window_seconds" in exc.context:
                headers = {"Retry-After": str(int(exc.context["window_seconds"]))}
            return JSONResponse(status_code=status_code, content=create_error_response(exc),
                                headers=headers)

    # 系统错误：记录日志，不向调用方暴露内部细节
    api_logger.error(f"[API] {request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": GENERIC_ERROR, "error_code": "INTERNAL_ERROR"}
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    api_logger.info(f"[API] Invalid request on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request parameters", "error_code": ErrorCodes.VALIDATION_INVALID_ID}
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None)
    )


def setup_exception_handlers(app: FastAPI):
    """注册异常处理器"""
    app.add_exception_handler(VoteSystemError, vote_system_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)


def setup_cors(app: FastAPI, config: UnifiedConfigManager):
    """设置CORS"""
    cors_origins = config.get_api_config().cors_origins

    # 通配符来源不能携带会话 cookie
    allow_credentials = "*" not in cors_origins
    if not allow_credentials:
        api_logger.warning("[CORS] Wildcard origin configured, credentials disabled for cross-origin requests")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=allow_credentials,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )


def setup_sessions(app: FastAPI, config: UnifiedConfigManager):
    """设置会话 cookie"""
    session_config = config.get_session_config()
    secret_key = session_config.secret_key
    if not secret_key:
        api_logger.warning("[API] No session secret configured, sessions will not survive a restart")
        secret_key = SecurityValidator.generate_secure_token(32)

    app.add_middleware(
        SessionMiddleware,
        secret_key=secret_key,
        session_cookie=session_config.cookie_name,
        max_age=session_config.ttl_seconds,
        same_site="lax",
        https_only=session_config.https_only,
    )


def setup_middleware(app: FastAPI, config: UnifiedConfigManager):
    """设置所有中间件"""
    setup_sessions(app, config)
    setup_cors(app, config)

    # 添加中间件（后添加的在外层）
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(LoggingMiddleware)

    api_logger.info("[API] Middleware setup completed")
