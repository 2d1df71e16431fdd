"""
app.core.exceptions
~~~~~~~~~~~~~~~~~~~

业务异常定义。

``RoomError`` 及其子类只表示「可预期的校验拒绝」，由事件路由器转换为
``{"success": false, "error": ...}`` 回执；它们永远不应导致房间或进程崩溃。
"""
from __future__ import annotations


class RoomError(Exception):
    """房间协调层的可预期错误基类。"""

    message: str = "Room operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)

    @property
    def error(self) -> str:
        """返回给客户端的错误描述。"""
        return str(self)


class DuplicateRoomError(RoomError):
    message = "Room ID already exists"


class RoomNotFoundError(RoomError):
    message = "Room not found"


class NotJoinedError(RoomError):
    message = "Not joined to a room"


class NotHostError(RoomError):
    message = "Only the host can change the video"


class InvalidPayloadError(RoomError):
    message = "Invalid payload"


class UploadError(Exception):
    """上传失败（缺少文件、超出大小限制等），由 HTTP 层转换为 400。"""
