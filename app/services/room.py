"""
app.services.room
~~~~~~~~~~~~~~~~~

房间聚合 —— 单个观影房间的状态机。

每个 ``WatchRoom`` 持有参与者名单、共享播放状态、有界聊天记录以及房主身份，
房间之间互不干扰。所有方法都是同步的，调用方（事件路由器）在同一个事件循环
回调内完成修改，不会在持有房间状态时等待 I/O。
"""
from __future__ import annotations

import uuid
from collections import deque
from datetime import datetime
from typing import Any

from app.core.config import settings
from app.schemas.room import (
    ChatMessage,
    MessageType,
    Participant,
    PlaybackState,
    RoomDetail,
    RoomSnapshot,
    RoomSummary,
    utc_now,
)


class WatchRoom:
    """一个观影房间。

    不变式：房间非空时恰好有一名参与者 ``is_host=True``。

    Attributes:
        id: 房间唯一标识。
        host_id: 当前房主的连接 ID。
        participants: 连接 ID → 参与者。
        playback: 共享播放状态。
        messages: 最近的聊天消息（超出上限时从最旧的开始淘汰）。
        created_at: 房间创建时间。
    """

    def __init__(
        self,
        room_id: str,
        host: Participant,
        max_messages: int | None = None,
    ) -> None:
        self.id = room_id
        self.host_id = host.id
        self.participants: dict[str, Participant] = {}
        self.playback = PlaybackState()
        self.messages: deque[ChatMessage] = deque(
            maxlen=max_messages or settings.MAX_ROOM_MESSAGES,
        )
        self.created_at: datetime = utc_now()

        self.add_participant(host)

    # ── 参与者 ────────────────────────────────────────────────────────

    def add_participant(self, participant: Participant) -> Participant:
        """按 ID 插入或覆盖参与者，重置加入时间与在线状态。

        ``is_host`` 由房间的 ``host_id`` 决定，不信任调用方传入的值。
        """
        stored = participant.model_copy(
            update={
                "joined_at": utc_now(),
                "is_online": True,
                "is_host": participant.id == self.host_id,
            },
        )
        self.participants[stored.id] = stored
        return stored

    def remove_participant(self, participant_id: str) -> Participant | None:
        return self.participants.pop(participant_id, None)

    def update_participant(self, participant_id: str, **fields: Any) -> Participant | None:
        """合并字段到已有参与者；参与者不存在时什么也不做。"""
        current = self.participants.get(participant_id)
        if current is None:
            return None
        # 房主身份只能通过 transfer_host 变更
        fields.pop("is_host", None)
        updated = current.model_copy(update=fields)
        self.participants[participant_id] = updated
        return updated

    def get_participant(self, participant_id: str) -> Participant | None:
        return self.participants.get(participant_id)

    def list_participants(self) -> list[Participant]:
        """当前参与者快照，调用方不应依赖其顺序。"""
        return list(self.participants.values())

    def transfer_host(self, new_host_id: str | None = None) -> Participant | None:
        """把房主身份转交给指定参与者（缺省为最早加入的剩余参与者）。

        Returns:
            新房主；房间已空或指定参与者不存在时返回 ``None``。
        """
        if not self.participants:
            return None
        target_id = new_host_id or next(iter(self.participants))
        if target_id not in self.participants:
            return None

        for pid, participant in self.participants.items():
            if participant.is_host != (pid == target_id):
                self.participants[pid] = participant.model_copy(
                    update={"is_host": pid == target_id},
                )
        self.host_id = target_id
        return self.participants[target_id]

    def is_host(self, participant_id: str) -> bool:
        return self.host_id == participant_id and participant_id in self.participants

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    @property
    def is_empty(self) -> bool:
        return not self.participants

    # ── 聊天 ──────────────────────────────────────────────────────────

    def add_message(
        self,
        user_id: str,
        user_name: str,
        content: str,
        type: MessageType = "user",
    ) -> ChatMessage:
        """追加一条消息，分配新的 ID 和时间戳。"""
        message = ChatMessage(
            id=str(uuid.uuid4()),
            user_id=user_id,
            user_name=user_name,
            content=content,
            type=type,
            timestamp=utc_now(),
        )
        self.messages.append(message)
        return message

    # ── 播放 ──────────────────────────────────────────────────────────

    def update_playback(self, **fields: Any) -> PlaybackState:
        """合并字段到播放状态，不校验进度范围。"""
        self.playback = self.playback.model_copy(update=fields)
        return self.playback

    # ── 视图 ──────────────────────────────────────────────────────────

    def summary(self) -> RoomSummary:
        return RoomSummary(
            id=self.id,
            participant_count=self.participant_count,
            created_at=self.created_at,
        )

    def detail(self) -> RoomDetail:
        return RoomDetail(
            id=self.id,
            participant_count=self.participant_count,
            created_at=self.created_at,
            current_video=self.playback,
        )

    def snapshot(self) -> RoomSnapshot:
        """新成员加入时下发的完整快照（名单、播放状态、消息历史）。"""
        return RoomSnapshot(
            id=self.id,
            host_id=self.host_id,
            participants=self.list_participants(),
            current_video=self.playback,
            messages=list(self.messages),
        )
