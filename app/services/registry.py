"""
app.services.registry
~~~~~~~~~~~~~~~~~~~~~

连接注册表 —— 记录每个在线连接当前所在的房间及其显示名称。

事件路由器在处理每个事件时只从这里取一次 ``Session``，
不会再从别处推断「发送者在哪个房间」。
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Session:
    """一个已加入房间的连接。

    Attributes:
        connection_id: 连接 ID，同时是参与者 ID。
        room_id: 所在房间 ID。
        name: 显示名称。
    """

    connection_id: str
    room_id: str
    name: str


class ConnectionRegistry:
    """连接 ID → ``Session`` 的映射。"""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def bind(self, session: Session) -> None:
        self._sessions[session.connection_id] = session

    def get(self, connection_id: str) -> Session | None:
        return self._sessions.get(connection_id)

    def unbind(self, connection_id: str) -> Session | None:
        """移除连接记录（幂等）。"""
        return self._sessions.pop(connection_id, None)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
