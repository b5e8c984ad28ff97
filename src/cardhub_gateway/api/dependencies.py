"""Shared API dependencies: configuration, stores and request guards."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, sessionmaker

from cardhub_gateway.core.errors import AuthError, RateLimited, SignatureRejected
from cardhub_gateway.core.settings import Settings, get_settings
from cardhub_gateway.db.session import get_db, get_session_factory
from cardhub_gateway.services.captcha import CaptchaService
from cardhub_gateway.services.kv_store import KeyValueStore, build_kv_store
from cardhub_gateway.services.push import PushDispatcher
from cardhub_gateway.services.rate_limit import RateDecision, RateLimiter
from cardhub_gateway.services.replay import NonceLedger
from cardhub_gateway.services.request_auth import RequestAuthenticator
from cardhub_gateway.services.wechat import WeChatClient, load_wechat_config

logger = logging.getLogger(__name__)

# Optional bearer scheme: the API key check is skipped when no key is configured.
bearer_scheme = HTTPBearer(auto_error=False)

SettingsDep = Annotated[Settings, Depends(get_settings)]
SessionDep = Annotated[Session, Depends(get_db)]
SessionFactoryDep = Annotated[sessionmaker[Session], Depends(get_session_factory)]


@lru_cache(maxsize=4)
def _kv_store_for(url: str | None) -> KeyValueStore | None:
    return build_kv_store(url)


def get_kv_store(settings: SettingsDep) -> KeyValueStore | None:
    """Return the shared key/value store, or None when none is configured."""
    return _kv_store_for(settings.redis_url)


KVStoreDep = Annotated[KeyValueStore | None, Depends(get_kv_store)]


def get_rate_limiter(settings: SettingsDep, store: KVStoreDep) -> RateLimiter:
    return RateLimiter(
        store,
        max_requests=settings.rate_limit_max,
        window_seconds=settings.rate_limit_window_seconds,
    )


def get_nonce_ledger(settings: SettingsDep, store: KVStoreDep) -> NonceLedger | None:
    if store is None:
        return None
    return NonceLedger(store, ttl_seconds=settings.sign_window_seconds)


def get_request_authenticator(
    settings: SettingsDep,
    ledger: Annotated[NonceLedger | None, Depends(get_nonce_ledger)],
) -> RequestAuthenticator:
    return RequestAuthenticator(
        settings.client_sign_key,
        ledger,
        accept_window_seconds=settings.sign_window_seconds,
    )


def get_captcha_service(settings: SettingsDep) -> CaptchaService:
    return CaptchaService(settings.captcha_secret, ttl_seconds=settings.captcha_ttl_seconds)


def get_wechat_client(settings: SettingsDep) -> WeChatClient:
    return WeChatClient(load_wechat_config(settings))


def get_push_dispatcher(
    session_factory: SessionFactoryDep,
    client: Annotated[WeChatClient, Depends(get_wechat_client)],
) -> PushDispatcher:
    return PushDispatcher(session_factory, client)


RateLimiterDep = Annotated[RateLimiter, Depends(get_rate_limiter)]
AuthenticatorDep = Annotated[RequestAuthenticator, Depends(get_request_authenticator)]
CaptchaServiceDep = Annotated[CaptchaService, Depends(get_captcha_service)]
WeChatClientDep = Annotated[WeChatClient, Depends(get_wechat_client)]
PushDispatcherDep = Annotated[PushDispatcher, Depends(get_push_dispatcher)]


def client_ip(request: Request) -> str:
    """Return the caller's address, preferring proxy-supplied headers."""
    connecting_ip = request.headers.get("CF-Connecting-IP")
    if connecting_ip:
        return connecting_ip.strip()
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


def enforce_rate_limit(request: Request, limiter: RateLimiterDep) -> RateDecision:
    """Consume one request from the caller's window or raise RateLimited."""
    decision = limiter.check_and_consume(client_ip(request))
    if not decision.allowed:
        retry_after = decision.retry_after(limiter.now())
        logger.info("Rate limited %s on %s", client_ip(request), request.url.path)
        raise RateLimited("Too many requests, please try again later", retry_after=retry_after)
    return decision


def raw_request_path(request: Request) -> str:
    """Return the path exactly as sent, before percent-decoding."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        return raw_path.split(b"?", 1)[0].decode("latin-1")
    return request.url.path


def require_signature(request: Request, authenticator: AuthenticatorDep) -> None:
    """Reject requests whose ``_ts``/``_nonce``/``_sig`` parameters do not verify."""
    verdict = authenticator.authenticate(
        raw_request_path(request),
        request.query_params.multi_items(),
    )
    if not verdict:
        logger.info("Signature rejected on %s: %s", request.url.path, verdict.reason)
        raise SignatureRejected(verdict.reason or "signature verification failed")


def _check_api_key(
    settings: Settings,
    credentials: HTTPAuthorizationCredentials | None,
    message: str,
) -> None:
    if not settings.api_key:
        return
    token = credentials.credentials.strip() if credentials is not None else None
    if token != settings.api_key:
        raise AuthError(message)


def require_ping_key(
    settings: SettingsDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> None:
    _check_api_key(settings, credentials, "Invalid API key")


def require_sync_key(
    settings: SettingsDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> None:
    _check_api_key(settings, credentials, "Authentication failed, check the API key")

