"""
app.services.event_router
~~~~~~~~~~~~~~~~~~~~~~~~~

事件路由器 —— 房间协调的核心。

接收客户端事件 → 通过连接注册表取得发送者会话 → 做权限校验（如仅房主可换片）
→ 修改房间聚合 → 计算广播范围（排除发送者 / 全房间 / 单一目标）。

``dispatch()`` 与 ``disconnect()`` 都是同步方法：房间状态的修改在一次调用内
完成，期间不做任何 I/O。返回的 ``Delivery`` 列表由传输层在之后发送，
因此同一事件循环上的事件天然按到达顺序串行作用于房间。

房主离开策略：转移。房主断开后由最早加入的剩余参与者接任并广播
``host-changed``；只有房间变空时才删除房间。
"""
from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from app.core.exceptions import (
    DuplicateRoomError,
    InvalidPayloadError,
    NotHostError,
    NotJoinedError,
    RoomError,
    RoomNotFoundError,
)
from app.core.logging import get_logger
from app.schemas.events import (
    INBOUND_MODELS,
    CreateRoomIn,
    FailureOut,
    HostChangedOut,
    JoinRoomIn,
    LegacySignalIn,
    MediaStatusIn,
    MediaStatusOut,
    MediaToggledOut,
    NewMessageOut,
    PlaybackEventOut,
    PlaybackPositionIn,
    RoomReplyOut,
    SendMessageIn,
    SignalIn,
    ToggleIn,
    UserJoinedOut,
    UserLeftOut,
    VideoSeekIn,
    VideoSyncIn,
    VideoSyncOut,
    VideoUrlChangedOut,
    VideoUrlChangeIn,
)
from app.schemas.room import Participant
from app.services.delivery import Delivery, Dispatch
from app.services.registry import ConnectionRegistry, Session
from app.services.room import WatchRoom
from app.services.room_store import RoomStore
from app.services.signaling import SignalingRelay

logger = get_logger(__name__)

_OK: dict[str, Any] = {"success": True}

# 旧版信令事件 → 载荷字段名
_LEGACY_SIGNAL_FIELDS: dict[str, str] = {
    "webrtc-offer": "offer",
    "webrtc-answer": "answer",
    "webrtc-ice-candidate": "candidate",
}


def _now_ms() -> int:
    return int(time.time() * 1000)


def default_name(connection_id: str) -> str:
    return f"User-{connection_id[:6]}"


class EventRouter:
    """入站事件分发与房间协调。

    Attributes:
        store: 房间仓库。
        registry: 连接注册表。
        relay: 信令中继。
    """

    def __init__(
        self,
        store: RoomStore,
        registry: ConnectionRegistry,
        relay: SignalingRelay | None = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.relay = relay or SignalingRelay(registry)
        self._handlers: dict[str, Callable[[str, str, Any], Dispatch]] = {
            "create-room": self._create_room,
            "join-room": self._join_room,
            "leave-room": self._leave_room,
            "video-play": self._video_play,
            "video-pause": self._video_pause,
            "video-seek": self._video_seek,
            "video-sync": self._video_sync,
            "video-url-change": self._video_url_change,
            "send-message": self._send_message,
            "media-status-update": self._media_status_update,
            "toggle-audio": self._toggle_media,
            "toggle-video": self._toggle_media,
            "webrtc-signal": self._webrtc_signal,
            "webrtc-offer": self._legacy_signal,
            "webrtc-answer": self._legacy_signal,
            "webrtc-ice-candidate": self._legacy_signal,
        }

    # ── 入口 ──────────────────────────────────────────────────────────

    def dispatch(self, connection_id: str, event: str, data: dict[str, Any]) -> Dispatch:
        """处理一个入站事件。

        校验失败、房间不存在、越权等可预期错误不会抛出，而是转换为
        ``{"success": false, "error": ...}`` 回执且不产生任何广播。

        Args:
            connection_id: 发送者连接 ID。
            event: 事件名。
            data: 原始 JSON 载荷。

        Returns:
            回执与待发送事件。
        """
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug("忽略未知事件 | event=%s", event)
            return Dispatch(reply=FailureOut(error=f"Unknown event: {event}").to_wire())

        try:
            payload = self._parse(event, data)
            return handler(connection_id, event, payload)
        except RoomError as exc:
            logger.info("事件被拒绝 | event=%s | reason=%s", event, exc.error)
            return Dispatch(reply=FailureOut(error=exc.error).to_wire())

    def disconnect(self, connection_id: str) -> list[Delivery]:
        """连接断开：清理注册表与房间，必要时转移房主。可重复调用。"""
        return self._leave_current(connection_id)

    # ── 内部工具 ──────────────────────────────────────────────────────

    @staticmethod
    def _parse(event: str, data: dict[str, Any]) -> BaseModel:
        try:
            return INBOUND_MODELS[event].model_validate(data)
        except ValidationError as exc:
            errors = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            )
            raise InvalidPayloadError(f"Invalid payload for {event}: {errors}") from exc

    def _require_session(self, connection_id: str) -> tuple[Session, WatchRoom]:
        session = self.registry.get(connection_id)
        if session is None:
            raise NotJoinedError()
        room = self.store.get_room(session.room_id)
        if room is None:
            # 房间已被删除，会话过期
            self.registry.unbind(connection_id)
            raise RoomNotFoundError()
        return session, room

    @staticmethod
    def _members(room: WatchRoom, exclude: str | None = None) -> tuple[str, ...]:
        return tuple(pid for pid in room.participants if pid != exclude)

    def _leave_current(self, connection_id: str) -> list[Delivery]:
        session = self.registry.unbind(connection_id)
        if session is None:
            return []
        room = self.store.get_room(session.room_id)
        if room is None:
            return []

        was_host = room.is_host(connection_id)
        room.remove_participant(connection_id)
        logger.info("%s 离开房间 %s", session.name, room.id)

        if room.is_empty:
            self.store.delete_room(room.id)
            return []

        new_host = room.transfer_host() if was_host else None
        if new_host is not None:
            logger.info("房主已转移 | room=%s | new_host=%s", room.id, new_host.name)

        members = self._members(room)
        deliveries = [
            Delivery(
                members,
                "user-left",
                UserLeftOut(
                    user_id=connection_id,
                    user_name=session.name,
                    participants=room.list_participants(),
                ).to_wire(),
            ),
        ]
        if new_host is not None:
            deliveries.append(
                Delivery(
                    members,
                    "host-changed",
                    HostChangedOut(
                        new_host_id=new_host.id,
                        new_host_name=new_host.name,
                    ).to_wire(),
                ),
            )
        return deliveries

    @staticmethod
    def _room_reply(room: WatchRoom, user: Participant) -> dict[str, Any]:
        return RoomReplyOut(room_id=room.id, user=user, room=room.snapshot()).to_wire()

    # ── 房间生命周期 ──────────────────────────────────────────────────

    def _create_room(self, cid: str, event: str, payload: CreateRoomIn) -> Dispatch:
        room_id = payload.room_id or self.store.generate_room_id()
        if room_id in self.store:
            raise DuplicateRoomError()

        deliveries = self._leave_current(cid)
        name = payload.name or default_name(cid)
        room = self.store.create_room(room_id, Participant(id=cid, name=name))
        self.registry.bind(Session(connection_id=cid, room_id=room.id, name=name))

        host = room.get_participant(cid)
        return Dispatch(reply=self._room_reply(room, host), deliveries=deliveries)

    def _join_room(self, cid: str, event: str, payload: JoinRoomIn) -> Dispatch:
        room = self.store.get_room(payload.room_id)
        if room is None:
            raise RoomNotFoundError()

        current = self.registry.get(cid)
        if current is not None and current.room_id == room.id:
            # 重复加入同一房间：只回放快照
            return Dispatch(reply=self._room_reply(room, room.get_participant(cid)))

        deliveries = self._leave_current(cid)
        name = payload.display_name or default_name(cid)
        user = room.add_participant(Participant(id=cid, name=name))
        self.registry.bind(Session(connection_id=cid, room_id=room.id, name=name))
        logger.info("%s 加入房间 %s", name, room.id)

        deliveries.append(
            Delivery(
                self._members(room, exclude=cid),
                "user-joined",
                UserJoinedOut(
                    user_id=cid,
                    user_name=name,
                    is_host=user.is_host,
                    participants=room.list_participants(),
                ).to_wire(),
            ),
        )
        return Dispatch(reply=self._room_reply(room, user), deliveries=deliveries)

    def _leave_room(self, cid: str, event: str, payload: Any) -> Dispatch:
        if cid not in self.registry:
            raise NotJoinedError()
        return Dispatch(reply=_OK, deliveries=self._leave_current(cid))

    # ── 播放同步 ──────────────────────────────────────────────────────

    def _playback_broadcast(
        self, cid: str, room: WatchRoom, event: str, current_time: float,
    ) -> Dispatch:
        out = PlaybackEventOut(room_id=room.id, current_time=current_time, timestamp=_now_ms())
        return Dispatch(
            reply=_OK,
            deliveries=[Delivery(self._members(room, exclude=cid), event, out.to_wire())],
        )

    def _video_play(self, cid: str, event: str, payload: PlaybackPositionIn) -> Dispatch:
        session, room = self._require_session(cid)
        room.update_playback(is_playing=True, current_time=payload.current_time)
        logger.debug("播放 | room=%s | t=%.2f", room.id, payload.current_time)
        return self._playback_broadcast(cid, room, event, payload.current_time)

    def _video_pause(self, cid: str, event: str, payload: PlaybackPositionIn) -> Dispatch:
        session, room = self._require_session(cid)
        room.update_playback(is_playing=False, current_time=payload.current_time)
        logger.debug("暂停 | room=%s | t=%.2f", room.id, payload.current_time)
        return self._playback_broadcast(cid, room, event, payload.current_time)

    def _video_seek(self, cid: str, event: str, payload: VideoSeekIn) -> Dispatch:
        session, room = self._require_session(cid)
        room.update_playback(current_time=payload.current_time)
        logger.debug("跳转 | room=%s | t=%.2f", room.id, payload.current_time)
        return self._playback_broadcast(cid, room, event, payload.current_time)

    def _video_sync(self, cid: str, event: str, payload: VideoSyncIn) -> Dispatch:
        session, room = self._require_session(cid)
        room.update_playback(current_time=payload.current_time, is_playing=payload.playing)
        out = VideoSyncOut(
            room_id=room.id,
            current_time=payload.current_time,
            playing=payload.playing,
            timestamp=_now_ms(),
        )
        # 权威同步：发送者本人也会收到
        return Dispatch(
            reply=_OK,
            deliveries=[Delivery(self._members(room), "video-sync", out.to_wire())],
        )

    def _video_url_change(self, cid: str, event: str, payload: VideoUrlChangeIn) -> Dispatch:
        session, room = self._require_session(cid)
        if not room.is_host(cid):
            # 非房主换片：不广播，仅在客户端请求回执时返回失败
            raise NotHostError()

        room.update_playback(url=payload.url, current_time=0.0, is_playing=False)
        logger.info("房间 %s 切换视频 -> %s", room.id, payload.url)
        out = VideoUrlChangedOut(room_id=room.id, url=payload.url)
        return Dispatch(
            reply=_OK,
            deliveries=[Delivery(self._members(room), "video-url-changed", out.to_wire())],
        )

    # ── 聊天 ──────────────────────────────────────────────────────────

    def _send_message(self, cid: str, event: str, payload: SendMessageIn) -> Dispatch:
        session, room = self._require_session(cid)
        message = room.add_message(
            user_id=cid,
            user_name=session.name,
            content=payload.content,
            type=payload.message_type,
        )
        out = NewMessageOut(**message.model_dump())
        return Dispatch(
            reply=_OK,
            deliveries=[Delivery(self._members(room), "new-message", out.to_wire())],
        )

    # ── 媒体状态 ──────────────────────────────────────────────────────

    def _media_status_update(self, cid: str, event: str, payload: MediaStatusIn) -> Dispatch:
        session, room = self._require_session(cid)
        room.update_participant(
            cid,
            audio_enabled=payload.audio_enabled,
            video_enabled=payload.video_enabled,
            is_online=True,
        )
        out = MediaStatusOut(
            room_id=room.id,
            user_id=cid,
            audio_enabled=payload.audio_enabled,
            video_enabled=payload.video_enabled,
        )
        return Dispatch(
            reply=_OK,
            deliveries=[Delivery(self._members(room, exclude=cid), event, out.to_wire())],
        )

    def _toggle_media(self, cid: str, event: str, payload: ToggleIn) -> Dispatch:
        session, room = self._require_session(cid)
        if event == "toggle-audio":
            room.update_participant(cid, audio_enabled=payload.enabled)
            outbound = "user-audio-toggled"
        else:
            room.update_participant(cid, video_enabled=payload.enabled)
            outbound = "user-video-toggled"

        out = MediaToggledOut(user_id=cid, enabled=payload.enabled)
        return Dispatch(
            reply=_OK,
            deliveries=[Delivery(self._members(room, exclude=cid), outbound, out.to_wire())],
        )

    # ── 信令 ──────────────────────────────────────────────────────────

    @staticmethod
    def _signal_dispatch(delivery: Delivery | None) -> Dispatch:
        # 目标已离开或不在同一房间：静默丢弃，不视为失败
        if delivery is None:
            return Dispatch(reply=_OK)
        return Dispatch(reply=_OK, deliveries=[delivery])

    def _webrtc_signal(self, cid: str, event: str, payload: SignalIn) -> Dispatch:
        session, room = self._require_session(cid)
        delivery = self.relay.relay_signal(session, payload.to, payload.signal)
        return self._signal_dispatch(delivery)

    def _legacy_signal(self, cid: str, event: str, payload: LegacySignalIn) -> Dispatch:
        session, room = self._require_session(cid)
        field = _LEGACY_SIGNAL_FIELDS[event]
        delivery = self.relay.relay_legacy(
            session, event, payload.target_id, field, getattr(payload, field),
        )
        return self._signal_dispatch(delivery)
