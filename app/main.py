"""
app.main
~~~~~~~~

FastAPI 应用入口 —— 注册路由、挂载中间件、定义生命周期。
"""
from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api import rooms, upload, ws
from app.core.config import settings
from app.core.logging import get_logger, setup_logging
from app.core.rate_limit import limiter
from app.schemas.api_response import error_response
from app.services.connection import ConnectionManager
from app.services.event_router import EventRouter
from app.services.registry import ConnectionRegistry
from app.services.room_store import RoomStore
from app.services.storage import VideoStorage

# 初始化日志系统（必须在其他模块之前）
setup_logging()
logger = get_logger(__name__)


# ── 生命周期 ──────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期钩子，仅在 worker 启动/关闭时各执行一次。"""
    # ── 启动 ──
    store = RoomStore()
    registry = ConnectionRegistry()
    app.state.room_store = store
    app.state.registry = registry
    app.state.event_router = EventRouter(store, registry)
    app.state.connections = ConnectionManager()
    app.state.video_storage = VideoStorage()
    logger.info(
        "🚀 应用已启动 | env=%s | debug=%s | log_level=%s",
        settings.ENVIRONMENT,
        settings.debug,
        settings.effective_log_level,
    )
    yield
    # ── 关闭 ──
    logger.info("👋 应用已关闭 | 剩余房间: %d", len(store))


# ── 创建 FastAPI 实例 ─────────────────────────────────────────────────

app: FastAPI = FastAPI(
    title=settings.PROJECT_NAME,
    description="多人同步观影后端：房间协调、聊天与 WebRTC 信令",
    version=settings.VERSION,
    debug=settings.debug,
    lifespan=lifespan,
)

# ── 限流 ──────────────────────────────────────────────────────────────
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ── CORS 中间件 ───────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.is_prod,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# ── 路由挂载 ──────────────────────────────────────────────────────────
app.include_router(rooms.router, tags=["Rooms"])
app.include_router(upload.router, tags=["Upload"])
app.include_router(ws.router, tags=["WebSocket"])

settings.upload_path.mkdir(parents=True, exist_ok=True)
app.mount(
    settings.UPLOAD_BASE_URL,
    StaticFiles(directory=settings.upload_path),
    name="uploads",
)


# ── 全局异常处理器 ────────────────────────────────────────────────────

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """捕获所有未处理异常，返回统一的 ApiResponse.fail() 格式。"""
    logger.error("未捕获异常: %s %s -> %s", request.method, request.url, exc, exc_info=True)
    # 非 prod 环境返回详细错误信息，prod 环境隐藏内部细节
    detail = str(exc) if not settings.is_prod else "服务器内部错误"
    return error_response(500, detail)


@app.get("/health", tags=["System"])
async def health_check() -> JSONResponse:
    """验证服务是否正常运行。"""
    return JSONResponse(
        content={
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.reload,  # 仅 dev 环境开启热重载
        log_level=settings.effective_log_level.lower(),
    )
