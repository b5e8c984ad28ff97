"""Main entry point for the CardHub gateway."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cardhub_gateway.api import (
    config_router,
    query_router,
    route_push_router,
    sync_router,
    wechat_router,
)
from cardhub_gateway.api.cors import ALLOW_HEADERS, ALLOW_METHODS, MAX_AGE_SECONDS
from cardhub_gateway.api.error_handlers import register_error_handlers
from cardhub_gateway.api.static import router as static_router
from cardhub_gateway.core.log_config import configure_logging
from cardhub_gateway.core.settings import settings
from cardhub_gateway.db.session import create_tables

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if settings.auto_create_tables:
        create_tables()
    logger.info(
        "Gateway starting: signing=%s captcha=%s kv_store=%s wechat_push=%s",
        bool(settings.client_sign_key),
        bool(settings.captcha_secret),
        bool(settings.redis_url),
        settings.wechat_push_enabled,
    )
    yield


# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Edge gateway for QSL CardHub sync, query and carrier webhooks",
    version=settings.app_version,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=ALLOW_METHODS,
    allow_headers=ALLOW_HEADERS,
    max_age=MAX_AGE_SECONDS,
)

register_error_handlers(app)

# Include API routers
app.include_router(sync_router)
app.include_router(query_router)
app.include_router(route_push_router)
app.include_router(wechat_router)
app.include_router(config_router)
# Catch-all static route must stay last.
app.include_router(static_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("cardhub_gateway.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
