"""
tests.conftest
~~~~~~~~~~~~~~

共享 pytest fixtures —— 构造互相隔离的房间仓库 / 注册表 / 路由器，
以及带 lifespan 的 ``TestClient``。
"""
from __future__ import annotations

import os
import tempfile
from collections.abc import Iterator

import pytest

# ── 在所有测试导入前设置环境变量 ─────────────────────────────────────
os.environ.setdefault("ENVIRONMENT", "test")  # 关闭 HTTP 限流，日志级别 DEBUG
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="watchparty-uploads-"))

from fastapi.testclient import TestClient  # noqa: E402

from app.services.event_router import EventRouter  # noqa: E402
from app.services.registry import ConnectionRegistry  # noqa: E402
from app.services.room_store import RoomStore  # noqa: E402


@pytest.fixture()
def store() -> RoomStore:
    return RoomStore()


@pytest.fixture()
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture()
def router(store: RoomStore, registry: ConnectionRegistry) -> EventRouter:
    return EventRouter(store, registry)


@pytest.fixture()
def client() -> Iterator[TestClient]:
    """运行 lifespan 的 TestClient，每个测试拿到全新的房间仓库。"""
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client
