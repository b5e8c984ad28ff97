"""WeChat official-account client.

Covers the three calls the gateway needs:

- OAuth code exchange, binding a subscriber's openid to a callsign
- client-credential access token retrieval
- template message delivery

Every request carries a bounded timeout, since pushes run after the response
has been sent and nothing else would stop a stalled call.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from cardhub_gateway.core.settings import Settings

logger = logging.getLogger(__name__)


class WeChatError(RuntimeError):
    """Raised when the WeChat API fails or returns an error payload."""


class WeChatDisabledError(WeChatError):
    """Raised when WeChat operations are attempted without credentials."""


@dataclass(frozen=True)
class WeChatConfig:
    """Immutable configuration for WeChat operations."""

    appid: str | None
    secret: str | None
    template_id: str | None
    base_url: str
    timeout_seconds: float

    @property
    def subscribe_enabled(self) -> bool:
        return bool(self.appid and self.secret)

    @property
    def push_enabled(self) -> bool:
        return self.subscribe_enabled and bool(self.template_id)


def load_wechat_config(settings: Settings) -> WeChatConfig:
    """Build configuration object from settings."""

    return WeChatConfig(
        appid=settings.wechat_appid,
        secret=settings.wechat_secret,
        template_id=settings.wechat_template_id,
        base_url=settings.wechat_api_base_url,
        timeout_seconds=float(settings.wechat_http_timeout_seconds),
    )


class WeChatClient:
    """HTTP client wrapper for the WeChat official-account API."""

    def __init__(
        self,
        config: WeChatConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.config.subscribe_enabled:
            raise WeChatDisabledError("WeChat official account is not configured")

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> WeChatClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json_data: Any | None = None,
    ) -> dict[str, Any]:
        client = await self._ensure_client()
        try:
            response = await client.request(method, path, params=params, json=json_data)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise WeChatError(f"WeChat request {method} {path} failed: {exc}") from exc
        except ValueError as exc:
            raise WeChatError(f"WeChat returned a non-JSON body for {path}") from exc

        if not isinstance(payload, dict):
            raise WeChatError(f"Unexpected WeChat payload for {path}")
        if payload.get("errcode"):
            raise WeChatError(
                f"WeChat error {payload.get('errcode')}: {payload.get('errmsg', 'unknown')}"
            )
        return payload

    async def exchange_oauth_code(self, code: str) -> str:
        """Exchange a web authorization code for the subscriber's openid."""

        payload = await self._request(
            "GET",
            "/sns/oauth2/access_token",
            params={
                "appid": self.config.appid or "",
                "secret": self.config.secret or "",
                "code": code,
                "grant_type": "authorization_code",
            },
        )
        openid = payload.get("openid")
        if not openid:
            raise WeChatError(f"WeChat authorization returned no openid: {payload}")
        return str(openid)

    async def fetch_access_token(self) -> str:
        """Obtain a client-credential access token for template sends."""

        payload = await self._request(
            "GET",
            "/cgi-bin/token",
            params={
                "grant_type": "client_credential",
                "appid": self.config.appid or "",
                "secret": self.config.secret or "",
            },
        )
        token = payload.get("access_token")
        if not token:
            raise WeChatError("WeChat token response carried no access_token")
        return str(token)

    async def send_template(
        self,
        access_token: str,
        openid: str,
        data: dict[str, dict[str, str]],
    ) -> None:
        """Deliver one template message to ``openid``."""

        if not self.config.template_id:
            raise WeChatDisabledError("WeChat template id is not configured")

        await self._request(
            "POST",
            "/cgi-bin/message/template/send",
            params={"access_token": access_token},
            json_data={
                "touser": openid,
                "template_id": self.config.template_id,
                "data": data,
            },
        )
        logger.debug("Sent template message to %s", openid)
