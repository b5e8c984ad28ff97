# tests/conftest.py
from __future__ import annotations

import os
import time
import uuid
from collections.abc import Callable, Generator, Iterator
from typing import Any
from urllib.parse import urlencode

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")

from cardhub_gateway.api.dependencies import get_kv_store, get_wechat_client
from cardhub_gateway.core.security import sign
from cardhub_gateway.core.settings import Settings, get_settings
from cardhub_gateway.db.session import Base, get_db, get_session_factory
from cardhub_gateway.main import app as fastapi_app
from cardhub_gateway.models import Card, Project, SfOrder
from cardhub_gateway.services.kv_store import MemoryStore
from cardhub_gateway.services.wechat import WeChatClient, load_wechat_config

TEST_DB_URL = "sqlite://"
TEST_SIGN_KEY = "test-sign-key"
TEST_TIMESTAMP = "2024-05-01T08:00:00.000+00:00"


class FakeClock:
    """Manually advanced clock for time-dependent services."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def test_settings() -> Settings:
    """Settings with every optional feature off except the in-memory store."""
    return Settings(
        _env_file=None,
        database_url=TEST_DB_URL,
        redis_url="memory://",
        api_key=None,
        client_sign_key=None,
        captcha_secret=None,
        wechat_appid=None,
        wechat_secret=None,
        wechat_template_id=None,
        site_filing=None,
        static_dir=None,
        auto_create_tables=False,
    )


@pytest.fixture()
def kv_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def wechat_requests() -> list[httpx.Request]:
    """Requests captured by the fake WeChat transport."""
    return []


@pytest.fixture()
def wechat_handler(wechat_requests: list[httpx.Request]) -> Callable[[httpx.Request], httpx.Response]:
    """Default fake WeChat API: every call succeeds."""

    def handler(request: httpx.Request) -> httpx.Response:
        wechat_requests.append(request)
        if request.url.path == "/sns/oauth2/access_token":
            return httpx.Response(200, json={"openid": "openid-1", "access_token": "web-token"})
        if request.url.path == "/cgi-bin/token":
            return httpx.Response(200, json={"access_token": "access-token", "expires_in": 7200})
        if request.url.path == "/cgi-bin/message/template/send":
            return httpx.Response(200, json={"errcode": 0, "errmsg": "ok", "msgid": 1})
        return httpx.Response(404, json={"errcode": 404, "errmsg": "not found"})

    return handler


@pytest.fixture()
def app(
    test_settings: Settings,
    session_factory: sessionmaker[Session],
    kv_store: MemoryStore,
    wechat_handler: Callable[[httpx.Request], httpx.Response],
) -> Iterator[FastAPI]:
    def _get_db_override() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    def _get_kv_store_override() -> MemoryStore | None:
        return kv_store if test_settings.redis_url else None

    def _get_wechat_client_override() -> WeChatClient:
        return WeChatClient(
            load_wechat_config(test_settings),
            transport=httpx.MockTransport(wechat_handler),
        )

    fastapi_app.dependency_overrides[get_settings] = lambda: test_settings
    fastapi_app.dependency_overrides[get_db] = _get_db_override
    fastapi_app.dependency_overrides[get_session_factory] = lambda: session_factory
    fastapi_app.dependency_overrides[get_kv_store] = _get_kv_store_override
    fastapi_app.dependency_overrides[get_wechat_client] = _get_wechat_client_override
    try:
        yield fastapi_app
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def signed_url(test_settings: Settings) -> Callable[..., str]:
    """Return a builder for correctly signed query URLs."""
    test_settings.client_sign_key = TEST_SIGN_KEY

    def build(path: str, params: dict[str, str] | None = None, *, nonce: str | None = None) -> str:
        pairs = list((params or {}).items())
        ts = str(int(time.time() * 1000))
        nonce = nonce or uuid.uuid4().hex
        sig = sign(path, pairs, ts, nonce, TEST_SIGN_KEY)
        query = urlencode(pairs + [("_ts", ts), ("_nonce", nonce), ("_sig", sig)])
        return f"{path}?{query}"

    return build


def _insert_card(
    db: Session,
    *,
    client_id: str = "client-a",
    card_id: str = "card-1",
    callsign: str = "BV2ABC",
    project_id: str | None = "project-1",
    project_name: str | None = "2024 Contest",
    status: str = "distributed",
    metadata: str | None = None,
    created_at: str = TEST_TIMESTAMP,
    order_id: str | None = None,
    waybill_no: str | None = None,
) -> Card:
    """Insert a card (plus its project and order when given) and commit."""
    if project_id is not None and db.get(Project, (client_id, project_id)) is None:
        db.add(
            Project(
                client_id=client_id,
                id=project_id,
                name=project_name,
                created_at=created_at,
                updated_at=created_at,
            )
        )
    card = Card(
        client_id=client_id,
        id=card_id,
        project_id=project_id,
        callsign=callsign,
        qty=1,
        status=status,
        metadata_json=metadata,
        created_at=created_at,
        updated_at=created_at,
    )
    db.add(card)
    if order_id is not None or waybill_no is not None:
        db.add(
            SfOrder(
                client_id=client_id,
                id=f"order-{card_id}",
                order_id=order_id,
                waybill_no=waybill_no,
                card_id=card_id,
                status="confirmed",
                pay_method=1,
                cargo_name="QSL Card",
                sender_info="{}",
                recipient_info="{}",
                created_at=created_at,
                updated_at=created_at,
            )
        )
    db.commit()
    return card


@pytest.fixture()
def seed_card(db_session: Session) -> Callable[..., Card]:
    """Return a helper that stores a card for the test database."""

    def seed(**kwargs: Any) -> Card:
        return _insert_card(db_session, **kwargs)

    return seed
