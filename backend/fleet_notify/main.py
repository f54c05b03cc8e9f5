import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware

from fleet_notify.config import settings
from fleet_notify.logging_config import AlertLevel, log_alert, root_logger  # noqa: F401  初始化日志配置
from fleet_notify.api import auth, notifications
from fleet_notify.core.errors import MSG_INTERNAL_ERROR, NotificationError

logger = logging.getLogger(__name__)

app = FastAPI(title="Fleet Notification API")

# 速率限制（登录接口）
app.state.limiter = auth.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With", "Accept", "Origin"],
    max_age=3600,
)


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    """添加安全响应头"""
    response = await call_next(request)
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


@app.exception_handler(NotificationError)
async def notification_error_handler(request: Request, exc: NotificationError):
    """未在路由中转换的业务异常"""
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """全局异常处理器：记录详情，响应中不暴露内部信息"""
    log_alert(
        logger,
        AlertLevel.P1_URGENT,
        "未处理异常",
        f"{request.method} {request.url.path}: {type(exc).__name__}",
    )
    logger.error(f"未处理异常: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": MSG_INTERNAL_ERROR},
    )


# API routes
app.include_router(auth.router)
app.include_router(notifications.router)


@app.get("/health")
async def health():
    """健康检查端点"""
    return {"status": "ok"}


@app.get("/")
def root():
    return {"message": "Fleet notification backend is running", "docs": "/docs"}
