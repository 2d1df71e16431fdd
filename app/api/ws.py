"""
app.api.ws
~~~~~~~~~~

WebSocket 实时交互接口 —— 观影房间事件通道。

每个连接在建立时分配一个连接 ID（同时作为参与者 ID），随后所有房间操作
都通过 JSON 信封帧完成。

帧协议:
  - 客户端 → 服务端: ``{"event": "join-room", "data": {...}, "ack": 1}``
  - 服务端 → 客户端: ``{"event": "user-joined", "data": {...}}``
  - 回执:             ``{"event": "ack", "ack": 1, "data": {"success": true, ...}}``

``ack`` 可省略；省略时拒绝类错误不会回传给客户端。
"""
from __future__ import annotations

import uuid

import anyio
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from app.core.logging import connection_id_ctx_var, get_logger
from app.schemas.events import Envelope
from app.services.connection import ConnectionManager
from app.services.event_router import EventRouter

logger = get_logger(__name__)

router: APIRouter = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """房间事件 WebSocket 端点。

    Args:
        websocket: FastAPI WebSocket 连接对象。
    """
    event_router: EventRouter = websocket.app.state.event_router
    connections: ConnectionManager = websocket.app.state.connections

    connection_id = uuid.uuid4().hex
    token = connection_id_ctx_var.set(connection_id[:8])

    try:
        await connections.connect(connection_id, websocket)
        logger.info("连接建立 | 在线: %d", connections.online_count)
        await connections.send(connection_id, "connected", {"connectionId": connection_id})

        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    envelope = Envelope.model_validate_json(raw)
                except ValidationError:
                    logger.warning("忽略无法解析的帧: %.80s", raw)
                    continue

                try:
                    result = event_router.dispatch(connection_id, envelope.event, envelope.data)
                except Exception as e:
                    # 单个事件处理失败不影响连接与房间
                    logger.error("事件处理异常 | event=%s | %s", envelope.event, e, exc_info=True)
                    continue

                if envelope.ack is not None and result.reply is not None:
                    await connections.reply(connection_id, envelope.ack, result.reply)
                await connections.deliver(result.deliveries)

        except WebSocketDisconnect:
            pass  # 正常断开
        except Exception as e:
            logger.error("WebSocket 异常: %s", e, exc_info=True)
        finally:
            connections.disconnect(connection_id)
            departures = event_router.disconnect(connection_id)
            # 端点任务可能已被取消，离开通知仍须送达其余成员
            with anyio.CancelScope(shield=True):
                await connections.deliver(departures)
            logger.info("连接断开 | 在线: %d", connections.online_count)

    finally:
        connection_id_ctx_var.reset(token)
