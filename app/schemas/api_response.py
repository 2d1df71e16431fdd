"""
app.schemas.api_response
~~~~~~~~~~~~~~~~~~~~~~~~

HTTP 错误应答体。

成功响应直接返回前端约定的 JSON 结构（房间摘要、上传结果等），
所有失败响应（404 / 400 / 500）统一使用 ``ApiResponse`` 包装：

.. code-block:: json

    {"code": 404, "data": null, "msg": "Room not found"}
"""
from __future__ import annotations

from typing import Any, Generic, TypeVar

from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """统一 JSON 应答体。

    Attributes:
        code: 状态码，与 HTTP 状态码一致。
        data: 附加数据，错误时通常为 ``None``。
        msg: 人类可读的状态消息。
    """

    code: int = Field(default=200, description="状态码")
    data: T | None = Field(default=None, description="附加数据")
    msg: str = Field(default="success", description="状态消息")

    @classmethod
    def fail(cls, msg: str = "error", code: int = 500, data: Any = None) -> ApiResponse[Any]:
        """快捷构造失败响应。"""
        return cls(code=code, data=data, msg=msg)


def error_response(status_code: int, msg: str) -> JSONResponse:
    """构造带 ``ApiResponse`` 错误体的 JSONResponse。"""
    return JSONResponse(
        status_code=status_code,
        content=ApiResponse.fail(msg=msg, code=status_code).model_dump(),
    )
