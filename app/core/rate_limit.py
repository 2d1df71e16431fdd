"""
app.core.rate_limit
~~~~~~~~~~~~~~~~~~~

HTTP 接口限流配置。

基于客户端 IP 地址进行限流，使用 slowapi 默认的内存存储。
WebSocket 事件不经过此限流器。
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    # 测试环境关闭限流，避免 TestClient 连续请求被拦截
    enabled=not settings.is_test,
)
