"""
app.services.signaling
~~~~~~~~~~~~~~~~~~~~~~

WebRTC 信令中继 —— 无状态地把协商载荷从一个连接转发给同房间的另一个连接。

载荷原样复制，只附加发送者的连接 ID 与显示名称；目标不存在或已离开时
直接丢弃，不重试也不缓存。
"""
from __future__ import annotations

from typing import Any

from app.core.logging import get_logger
from app.services.delivery import Delivery
from app.services.registry import ConnectionRegistry, Session

logger = get_logger(__name__)


class SignalingRelay:
    """同房间点对点信令转发。

    Attributes:
        registry: 连接注册表，用于确认目标连接仍在同一房间。
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        self.registry = registry

    def resolve_target(self, sender: Session, target_id: str) -> Session | None:
        """返回与发送者同房间的目标会话，否则 ``None``。"""
        if target_id == sender.connection_id:
            return None
        target = self.registry.get(target_id)
        if target is None or target.room_id != sender.room_id:
            return None
        return target

    def relay(
        self,
        sender: Session,
        event: str,
        target_id: str,
        payload: dict[str, Any],
    ) -> Delivery | None:
        """构造发往 ``target_id`` 的信令事件。

        Args:
            sender: 发送者会话。
            event: 出站事件名（与入站同名）。
            target_id: 目标连接 ID。
            payload: 原样转发的载荷字段（不含发送者标记）。

        Returns:
            待发送的 ``Delivery``；目标不可达时返回 ``None``。
        """
        target = self.resolve_target(sender, target_id)
        if target is None:
            logger.debug("信令目标不可达，丢弃 | event=%s | to=%s", event, target_id)
            return None
        return Delivery(
            targets=(target.connection_id,),
            event=event,
            payload={**payload, "fromName": sender.name},
        )

    def relay_signal(self, sender: Session, to: str, signal: Any) -> Delivery | None:
        """``webrtc-signal``：通用信令（simple-peer 风格）。"""
        return self.relay(
            sender,
            "webrtc-signal",
            to,
            {
                "roomId": sender.room_id,
                "signal": signal,
                "from": sender.connection_id,
                "to": to,
            },
        )

    def relay_legacy(
        self,
        sender: Session,
        event: str,
        target_id: str,
        field: str,
        value: Any,
    ) -> Delivery | None:
        """``webrtc-offer`` / ``webrtc-answer`` / ``webrtc-ice-candidate``。"""
        return self.relay(
            sender,
            event,
            target_id,
            {field: value, "fromId": sender.connection_id},
        )
