"""
app.api.rooms
~~~~~~~~~~~~~

房间只读 REST 接口。

端点:
  - ``GET /rooms``            → 房间摘要列表
  - ``GET /rooms/{room_id}``  → 房间摘要 + 当前播放状态

响应体直接返回 camelCase JSON（与 WebSocket 事件字段保持一致），
不使用 ``ApiResponse`` 包装。
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.api.deps import get_room_store
from app.core.rate_limit import limiter
from app.schemas.api_response import error_response
from app.services.room_store import RoomStore

router: APIRouter = APIRouter()


@router.get("/rooms", summary="获取房间列表")
@limiter.limit("10/second")
async def list_rooms(request: Request, store: RoomStore = Depends(get_room_store)) -> JSONResponse:
    """返回所有房间的公开摘要（不含消息历史与参与者详情）。"""
    return JSONResponse(content=[summary.to_wire() for summary in store.list_rooms()])


@router.get("/rooms/{room_id}", summary="获取房间详情")
@limiter.limit("5/second")
async def room_detail(
    request: Request, room_id: str, store: RoomStore = Depends(get_room_store),
) -> JSONResponse:
    """返回指定房间的摘要与当前播放状态。

    Args:
        room_id: 房间唯一标识。
    """
    room = store.get_room(room_id)
    if room is None:
        return error_response(404, "Room not found")
    return JSONResponse(content=room.detail().to_wire())
