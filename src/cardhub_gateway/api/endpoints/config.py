"""Frontend configuration endpoint."""

from typing import Any

from fastapi import APIRouter

from cardhub_gateway.api.dependencies import SettingsDep

router = APIRouter(prefix="/api", tags=["config"])


@router.get("/config")
async def get_public_config(settings: SettingsDep) -> dict[str, Any]:
    """Return feature flags, the query signing key and site filing metadata.

    The signing key is public on purpose: query signatures deter casual
    scripting and are not a secret-based guarantee.
    """
    return {
        "features": {
            "wechat_subscribe": settings.wechat_subscribe_enabled,
            "wechat_push": settings.wechat_push_enabled,
            "captcha": settings.captcha_enabled,
        },
        "wechat_appid": settings.wechat_appid if settings.wechat_subscribe_enabled else None,
        "sign_key": settings.client_sign_key or None,
        "filing": settings.filing,
    }
