"""
app.schemas.events
~~~~~~~~~~~~~~~~~~

WebSocket 事件协议模型。

每个事件名对应一个 Pydantic 模型：入站模型在边界处校验客户端载荷，
出站模型描述服务端推送的字段。字段名、事件名以及「谁会收到什么」共同
构成与前端的兼容契约。
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from app.schemas.room import (
    CamelModel,
    MessageType,
    Participant,
    RoomSnapshot,
)


# ── 传输信封 ──────────────────────────────────────────────────────────

class Envelope(BaseModel):
    """单个 WebSocket 帧：``{"event": ..., "data": ..., "ack": ...}``。"""

    event: str = Field(..., min_length=1, max_length=64)
    data: dict[str, Any] = Field(default_factory=dict)
    ack: int | None = Field(default=None, description="客户端期望回执时携带的序号")

    @field_validator("data", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value


# ---- client -> server ----

class CreateRoomIn(CamelModel):
    room_id: str | None = Field(default=None, min_length=1, max_length=64)
    name: str | None = Field(default=None, max_length=64)


class JoinRoomIn(CamelModel):
    room_id: str = Field(..., min_length=1, max_length=64)
    name: str | None = Field(default=None, max_length=64)
    user_name: str | None = Field(default=None, max_length=64)

    @property
    def display_name(self) -> str | None:
        return self.user_name or self.name


class LeaveRoomIn(CamelModel):
    pass


class PlaybackPositionIn(CamelModel):
    """``video-play`` / ``video-pause`` 的载荷，缺省进度为 0。"""

    current_time: float = 0.0


class VideoSeekIn(CamelModel):
    current_time: float


class VideoSyncIn(CamelModel):
    current_time: float = 0.0
    playing: bool = False


class VideoUrlChangeIn(CamelModel):
    url: str = Field(..., max_length=2048)


class SendMessageIn(CamelModel):
    content: str = Field(..., min_length=1, max_length=2000)
    type: str = "user"

    @property
    def message_type(self) -> MessageType:
        # 旧客户端使用 "text" 表示普通用户消息
        if self.type in ("system", "error"):
            return self.type  # type: ignore[return-value]
        return "user"


class MediaStatusIn(CamelModel):
    audio_enabled: bool = False
    video_enabled: bool = False


class ToggleIn(CamelModel):
    enabled: bool


class SignalIn(CamelModel):
    """通用信令：``to`` 为目标连接 ID，``signal`` 原样转发。"""

    to: str = Field(..., min_length=1)
    signal: Any = None


class LegacySignalIn(CamelModel):
    """``webrtc-offer`` / ``webrtc-answer`` / ``webrtc-ice-candidate``。"""

    target_id: str = Field(..., min_length=1)
    offer: Any = None
    answer: Any = None
    candidate: Any = None


INBOUND_MODELS: dict[str, type[CamelModel]] = {
    "create-room": CreateRoomIn,
    "join-room": JoinRoomIn,
    "leave-room": LeaveRoomIn,
    "video-play": PlaybackPositionIn,
    "video-pause": PlaybackPositionIn,
    "video-seek": VideoSeekIn,
    "video-sync": VideoSyncIn,
    "video-url-change": VideoUrlChangeIn,
    "send-message": SendMessageIn,
    "media-status-update": MediaStatusIn,
    "toggle-audio": ToggleIn,
    "toggle-video": ToggleIn,
    "webrtc-signal": SignalIn,
    "webrtc-offer": LegacySignalIn,
    "webrtc-answer": LegacySignalIn,
    "webrtc-ice-candidate": LegacySignalIn,
}


# ---- server -> clients ----

class RoomReplyOut(CamelModel):
    """``create-room`` / ``join-room`` 的成功回执。"""

    success: Literal[True] = True
    room_id: str
    user: Participant
    room: RoomSnapshot


class FailureOut(CamelModel):
    success: Literal[False] = False
    error: str


class UserJoinedOut(CamelModel):
    user_id: str
    user_name: str
    is_host: bool
    participants: list[Participant]


class UserLeftOut(CamelModel):
    user_id: str
    user_name: str
    participants: list[Participant]


class HostChangedOut(CamelModel):
    new_host_id: str
    new_host_name: str


class PlaybackEventOut(CamelModel):
    """``video-play`` / ``video-pause`` / ``video-seek`` 的广播载荷。"""

    room_id: str
    current_time: float
    timestamp: int = Field(..., description="服务端 epoch 毫秒")


class VideoSyncOut(CamelModel):
    room_id: str
    current_time: float
    playing: bool
    timestamp: int


class VideoUrlChangedOut(CamelModel):
    room_id: str
    url: str
    current_time: float = 0.0
    is_playing: bool = False


class NewMessageOut(CamelModel):
    id: str
    user_id: str
    user_name: str
    content: str
    type: MessageType
    timestamp: datetime


class MediaStatusOut(CamelModel):
    room_id: str
    user_id: str
    audio_enabled: bool
    video_enabled: bool


class MediaToggledOut(CamelModel):
    user_id: str
    enabled: bool
