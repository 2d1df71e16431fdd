"""
app.services.storage
~~~~~~~~~~~~~~~~~~~~

本地视频上传存储。

- 由原始文件名生成安全的存储文件名（不允许路径穿越）
- 流式写入临时文件，超出大小上限时中止并清理
- 写入完成后原子替换，返回可直接播放的公开 URL
"""
from __future__ import annotations

import os
import random
import re
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import UploadError
from app.core.logging import get_logger

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9\-_]")
_CHUNK_SIZE: int = 1024 * 1024  # 1MB


@dataclass(frozen=True)
class StoredVideo:
    """
    filename: 存储后的文件名（位于 UPLOAD_DIR 下）
    url: 公开访问地址
    original_name: 客户端上传时的文件名
    size: 文件字节数
    """
    filename: str
    url: str
    original_name: str
    size: int


class VideoStorage:
    """本地文件系统视频存储。"""

    def __init__(
        self,
        upload_dir: str | Path | None = None,
        base_url: str | None = None,
        max_bytes: int | None = None,
    ) -> None:
        self.upload_dir = Path(upload_dir or settings.upload_path)
        self.base_url = (base_url or f"{settings.public_base_url}{settings.UPLOAD_BASE_URL}").rstrip("/")
        self.max_bytes = max_bytes or settings.MAX_UPLOAD_BYTES
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    async def save_upload(self, upload: UploadFile | None) -> StoredVideo:
        """保存上传的视频文件。

        Raises:
            UploadError: 未提供文件或文件超出大小上限。
        """
        if upload is None or not upload.filename:
            raise UploadError("No file uploaded")

        filename = self.make_filename(upload.filename)
        abs_path = self.upload_dir / filename
        tmp_path = abs_path.with_suffix(abs_path.suffix + ".tmp")

        try:
            size = await self._write_upload_to_path(upload, tmp_path)
            os.replace(tmp_path, abs_path)
        except BaseException:
            # 超限、磁盘写满或请求被取消：都不能留下半截文件
            tmp_path.unlink(missing_ok=True)
            raise

        logger.info("视频已上传 | file=%s | size=%d", filename, size)
        return StoredVideo(
            filename=filename,
            url=f"{self.base_url}/{filename}",
            original_name=upload.filename,
            size=size,
        )

    @staticmethod
    def make_filename(original_name: str) -> str:
        """``<安全的原文件名>-<毫秒时间戳>-<随机数><扩展名>``。"""
        path = Path(original_name)
        ext = path.suffix if len(path.suffix) <= 10 else ""
        safe_base = _UNSAFE_CHARS.sub("_", path.stem) or "video"
        unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
        return f"{safe_base}-{unique_suffix}{ext}"

    async def _write_upload_to_path(self, upload: UploadFile, path: Path) -> int:
        size = 0
        with path.open("wb") as f:
            while True:
                chunk = await upload.read(_CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > self.max_bytes:
                    raise UploadError(f"File too large (limit {self.max_bytes} bytes)")
                f.write(chunk)
        return size
