"""
app.services.delivery
~~~~~~~~~~~~~~~~~~~~~

路由结果 —— 事件路由器只计算「发给谁、发什么」，实际发送交给传输层。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Delivery:
    """一条待发送的出站事件。

    Attributes:
        targets: 接收方连接 ID。
        event: 事件名。
        payload: 已序列化的 JSON 载荷。
    """

    targets: tuple[str, ...]
    event: str
    payload: dict[str, Any]


@dataclass
class Dispatch:
    """一次入站事件的处理结果。

    Attributes:
        reply: 回执载荷；``None`` 表示没有回执。
        deliveries: 需要推送的出站事件，按顺序发送。
    """

    reply: dict[str, Any] | None = None
    deliveries: list[Delivery] = field(default_factory=list)
