"""
app.services.connection
~~~~~~~~~~~~~~~~~~~~~~~

WebSocket 连接管理器 —— 维护连接 ID 到 WebSocket 的映射并负责投递事件。

投递是「发出即忘」的：目标已断开或发送失败时只记录日志并移除该连接，
不重试、不缓存。
"""
from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

from fastapi import WebSocket

from app.core.logging import get_logger
from app.services.delivery import Delivery

logger = get_logger(__name__)


class ConnectionManager:
    """全局 WebSocket 连接管理器。

    Attributes:
        active_connections: 连接 ID → WebSocket。
    """

    def __init__(self) -> None:
        self.active_connections: dict[str, WebSocket] = {}

    async def connect(self, connection_id: str, websocket: WebSocket) -> None:
        """接受新连接并登记。"""
        await websocket.accept()
        self.active_connections[connection_id] = websocket

    def disconnect(self, connection_id: str) -> None:
        """移除连接（幂等）。"""
        self.active_connections.pop(connection_id, None)

    async def send(self, connection_id: str, event: str, data: dict[str, Any]) -> bool:
        """向单个连接发送事件，返回是否成功。"""
        websocket = self.active_connections.get(connection_id)
        if websocket is None:
            return False
        try:
            await websocket.send_json({"event": event, "data": data})
        except Exception as e:
            logger.warning("发送失败，移除断开的连接 | to=%s | %s", connection_id, e)
            self.disconnect(connection_id)
            return False
        return True

    async def reply(self, connection_id: str, ack: int, data: dict[str, Any]) -> bool:
        """发送回执帧。"""
        websocket = self.active_connections.get(connection_id)
        if websocket is None:
            return False
        try:
            await websocket.send_json({"event": "ack", "ack": ack, "data": data})
        except Exception as e:
            logger.warning("回执发送失败 | to=%s | %s", connection_id, e)
            self.disconnect(connection_id)
            return False
        return True

    async def deliver(self, deliveries: Iterable[Delivery]) -> None:
        """按顺序投递事件，同一事件的多个目标并发发送。"""
        for delivery in deliveries:
            tasks = [
                self.send(target, delivery.event, delivery.payload)
                for target in delivery.targets
            ]
            if tasks:
                await asyncio.gather(*tasks)

    @property
    def online_count(self) -> int:
        """当前在线连接数。"""
        return len(self.active_connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self.active_connections
