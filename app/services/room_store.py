"""
app.services.room_store
~~~~~~~~~~~~~~~~~~~~~~~

房间仓库 —— 独占持有所有 ``WatchRoom``，负责创建、查询与删除。

在 FastAPI lifespan 中创建实例并挂载到 ``app.state``，测试中可以
自由构造多个互相隔离的仓库。
"""
from __future__ import annotations

import uuid

from app.core.config import settings
from app.core.exceptions import DuplicateRoomError
from app.core.logging import get_logger
from app.schemas.room import Participant, RoomSummary
from app.services.room import WatchRoom

logger = get_logger(__name__)


class RoomStore:
    """内存房间仓库。

    - ``create_room(room_id, host)`` → 新建房间，ID 冲突时抛出 ``DuplicateRoomError``
    - ``get_room(room_id)``          → 查询房间，不存在返回 ``None``
    - ``delete_room(room_id)``       → 删除房间（幂等）
    - ``list_rooms()``               → 公开的房间摘要列表
    """

    def __init__(self, max_messages: int | None = None) -> None:
        self._rooms: dict[str, WatchRoom] = {}
        self._max_messages = max_messages

    def create_room(self, room_id: str, host: Participant) -> WatchRoom:
        """以 ``host`` 为唯一成员兼房主创建房间。

        Raises:
            DuplicateRoomError: ``room_id`` 已被占用，原房间保持不变。
        """
        if room_id in self._rooms:
            raise DuplicateRoomError()
        room = WatchRoom(room_id, host, max_messages=self._max_messages)
        self._rooms[room_id] = room
        logger.info("房间已创建 | room_id=%s | host=%s", room_id, host.name)
        return room

    def get_room(self, room_id: str) -> WatchRoom | None:
        return self._rooms.get(room_id)

    def delete_room(self, room_id: str) -> None:
        if self._rooms.pop(room_id, None) is not None:
            logger.info("房间已删除 | room_id=%s", room_id)

    def list_rooms(self) -> list[RoomSummary]:
        """列出所有房间的摘要信息。"""
        return [room.summary() for room in self._rooms.values()]

    def generate_room_id(self) -> str:
        """生成一个尚未被占用的短房间 ID。"""
        while True:
            room_id = uuid.uuid4().hex[: settings.ROOM_ID_LENGTH]
            if room_id not in self._rooms:
                return room_id

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
