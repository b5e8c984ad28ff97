"""HTTP surface of the gateway."""

from .endpoints import (
    config_router,
    query_router,
    route_push_router,
    sync_router,
    wechat_router,
)

__all__ = [
    "config_router",
    "query_router",
    "route_push_router",
    "sync_router",
    "wechat_router",
]
