"""
app.schemas.room
~~~~~~~~~~~~~~~~

房间领域数据模型：参与者、播放状态、聊天消息及各类房间视图。

这些模型同时作为内存状态和线上 JSON 载荷使用。字段在 Python 侧使用
snake_case，序列化时（``by_alias=True``）输出为前端约定的 camelCase。
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MessageType = Literal["user", "system", "error"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """线上字段统一为 camelCase，Python 侧仍可按 snake_case 构造。"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict:
        """序列化为可直接发送的 JSON 字典。"""
        return self.model_dump(mode="json", by_alias=True)


class Participant(CamelModel):
    """房间参与者，身份即连接 ID。"""

    id: str = Field(..., description="连接 ID，同时作为参与者 ID")
    name: str = Field(..., description="显示名称")
    is_host: bool = Field(default=False, description="是否为房主")
    is_online: bool = Field(default=True, description="连接是否在线")
    audio_enabled: bool = Field(default=False, description="是否开启麦克风")
    video_enabled: bool = Field(default=False, description="是否开启摄像头")
    joined_at: datetime = Field(default_factory=utc_now, description="加入时间")


class PlaybackState(CamelModel):
    """房间共享的播放状态（最后写入者胜出）。"""

    url: str = Field(default="", description="当前视频地址")
    current_time: float = Field(default=0.0, description="播放进度（秒）")
    is_playing: bool = Field(default=False, description="是否正在播放")
    duration: float = Field(default=0.0, description="视频总时长（秒）")


class ChatMessage(CamelModel):
    """房间内的一条聊天消息。"""

    id: str
    user_id: str = Field(..., description="发送者连接 ID，系统消息为 ``system``")
    user_name: str
    content: str
    type: MessageType = "user"
    timestamp: datetime = Field(default_factory=utc_now)


class RoomSummary(CamelModel):
    """公开的房间摘要，不包含消息历史与参与者详情。"""

    id: str
    participant_count: int
    created_at: datetime


class RoomDetail(RoomSummary):
    """房间摘要 + 当前播放状态（``GET /rooms/{id}``）。"""

    current_video: PlaybackState


class RoomSnapshot(CamelModel):
    """加入房间时下发给新成员的完整快照。"""

    id: str
    host_id: str
    participants: list[Participant]
    current_video: PlaybackState
    messages: list[ChatMessage]
