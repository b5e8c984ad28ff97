"""Service layer for the CardHub gateway."""

from .captcha import CaptchaService, Challenge
from .card_query import CardQueryService
from .kv_store import KeyValueStore, MemoryStore, RedisStore, build_kv_store
from .push import PushDispatcher, dispatch_in_background, latest_per_shipment
from .rate_limit import RateDecision, RateLimiter
from .replay import NonceLedger
from .request_auth import RequestAuthenticator
from .route_push import WebhookIngestor
from .sync_ingest import SyncIngestor
from .wechat import WeChatClient, WeChatError

__all__ = [
    "CaptchaService",
    "CardQueryService",
    "Challenge",
    "KeyValueStore",
    "MemoryStore",
    "NonceLedger",
    "PushDispatcher",
    "RateDecision",
    "RateLimiter",
    "RedisStore",
    "RequestAuthenticator",
    "SyncIngestor",
    "WeChatClient",
    "WeChatError",
    "WebhookIngestor",
    "build_kv_store",
    "dispatch_in_background",
    "latest_per_shipment",
]
