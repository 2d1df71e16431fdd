"""
app.core.config
~~~~~~~~~~~~~~~

集中式配置管理，基于 pydantic-settings 自动从 ``.env`` 文件加载。

支持多环境配置（dev / test / prod），加载顺序为:
  1. 环境变量（最高优先级）
  2. ``.env.{ENVIRONMENT}`` 环境专属文件
  3. ``.env`` 基础文件
  4. 字段默认值（最低优先级）
"""
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# 读取当前环境标识（在 Settings 类定义之前，用于决定加载哪个 .env 文件）
_CURRENT_ENV: str = os.getenv("ENVIRONMENT", "dev")

PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """全局配置对象，字段值按如下优先级加载：环境变量 > .env.{env} > .env > 默认值。"""

    # ── 基础 ──────────────────────────────────────────────────────────
    PROJECT_NAME: str = Field(default="Watch Party Backend", description="项目名称")
    VERSION: str = Field(default="0.1.0", description="版本号")
    ENVIRONMENT: Literal["dev", "test", "prod"] = Field(
        default="dev",
        description="运行环境：dev / test / prod",
    )

    # ── 服务 ──────────────────────────────────────────────────────────
    HOST: str = Field(default="0.0.0.0", description="服务监听地址")
    PORT: int = Field(default=3001, description="服务监听端口")
    LOG_LEVEL: str = Field(default="INFO", description="日志级别（可被环境属性覆盖）")

    # ── CORS ──────────────────────────────────────────────────────────
    FRONTEND_URL: str = Field(
        default="http://localhost:5173",
        description="前端地址，prod 环境下唯一默认放行的来源",
    )
    ALLOWED_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5174"],
        description="额外放行的 CORS 来源",
    )

    # ── 上传 ──────────────────────────────────────────────────────────
    BACKEND_PUBLIC_URL: str = Field(
        default="",
        description="对外可访问的后端地址，用于拼接上传文件 URL；为空时使用 http://localhost:{PORT}",
    )
    UPLOAD_DIR: str = Field(
        default="uploads",
        description="上传文件存放目录（相对项目根目录）",
    )
    UPLOAD_BASE_URL: str = Field(default="/uploads", description="上传文件的静态访问前缀")
    MAX_UPLOAD_BYTES: int = Field(
        default=1024 * 1024 * 1024,
        description="单个视频文件大小上限（字节），默认 1 GiB",
    )

    # ── 房间 ──────────────────────────────────────────────────────────
    MAX_ROOM_MESSAGES: int = Field(
        default=100,
        ge=1,
        description="每个房间保留的最近聊天消息条数",
    )
    ROOM_ID_LENGTH: int = Field(
        default=8,
        ge=4,
        le=32,
        description="自动生成房间 ID 的长度",
    )

    # ── Pydantic Settings ─────────────────────────────────────────────
    # 先加载 .env.{env} 再加载 .env，前者优先级更高
    model_config = SettingsConfigDict(
        env_file=(f".env.{_CURRENT_ENV}", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── 环境判断 ──────────────────────────────────────────────────────

    @property
    def is_prod(self) -> bool:
        """当前是否为生产环境。"""
        return self.ENVIRONMENT == "prod"

    @property
    def is_test(self) -> bool:
        """当前是否为测试环境。"""
        return self.ENVIRONMENT == "test"

    @property
    def is_dev(self) -> bool:
        """当前是否为开发环境。"""
        return self.ENVIRONMENT == "dev"

    # ── 环境差异化行为 ────────────────────────────────────────────────

    @property
    def debug(self) -> bool:
        """是否开启 debug 模式。仅 dev 环境开启。"""
        return self.is_dev

    @property
    def reload(self) -> bool:
        """是否开启热重载。仅 dev 环境开启。"""
        return self.is_dev

    @property
    def effective_log_level(self) -> str:
        """根据环境自动推断日志级别。

        - dev  → INFO
        - test → DEBUG（方便排查测试失败）
        - prod → WARNING（减少噪音）

        如果环境变量中显式设置了 LOG_LEVEL，会覆盖此默认推断。
        """
        env_log = os.getenv("LOG_LEVEL")
        if env_log:
            return env_log
        return {
            "dev": "INFO",
            "test": "DEBUG",
            "prod": "WARNING",
        }.get(self.ENVIRONMENT, "INFO")

    @property
    def cors_origins(self) -> list[str]:
        """CORS 放行来源。非 prod 环境允许所有来源，方便本地调试。"""
        if not self.is_prod:
            return ["*"]
        return [self.FRONTEND_URL, *self.ALLOWED_ORIGINS]

    @property
    def public_base_url(self) -> str:
        """上传文件 URL 的前缀。"""
        return (self.BACKEND_PUBLIC_URL or f"http://localhost:{self.PORT}").rstrip("/")

    @property
    def upload_path(self) -> Path:
        """上传目录的绝对路径。"""
        path = Path(self.UPLOAD_DIR)
        return path if path.is_absolute() else PROJECT_ROOT / path


@lru_cache
def get_settings() -> Settings:
    """获取全局 Settings 单例（带缓存，避免重复解析 .env）。"""
    return Settings()


settings: Settings = get_settings()
