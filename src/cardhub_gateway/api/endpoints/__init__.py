"""API endpoint modules."""

from .config import router as config_router
from .query import router as query_router
from .route_push import router as route_push_router
from .sync import router as sync_router
from .wechat import router as wechat_router

__all__ = [
    "config_router",
    "query_router",
    "route_push_router",
    "sync_router",
    "wechat_router",
]
