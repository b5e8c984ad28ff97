# tests/services/test_push.py
"""Tests for subscriber push dispatch."""

import json

import httpx
import pytest

from cardhub_gateway.models import CallsignBinding
from cardhub_gateway.schemas.route_push import WaybillRoute
from cardhub_gateway.services.push import (
    SANDBOX_PREFIX,
    PushDispatcher,
    build_template_data,
    dispatch_in_background,
    latest_per_shipment,
)
from cardhub_gateway.services.wechat import WeChatClient, WeChatConfig

BOUND_AT = "2024-05-01T08:00:00.000+00:00"


def _config(template_id="tmpl-1"):
    return WeChatConfig(
        appid="wx-app",
        secret="wx-secret",
        template_id=template_id,
        base_url="https://wechat.test",
        timeout_seconds=5.0,
    )


def _route(mailno, accept_time, remark, **extra):
    return WaybillRoute(mailno=mailno, accept_time=accept_time, remark=remark, **extra)


def _sent_messages(requests):
    return [
        json.loads(request.content)
        for request in requests
        if request.url.path == "/cgi-bin/message/template/send"
    ]


@pytest.fixture
def subscribed_card(db_session, seed_card):
    seed_card(callsign="BV2ABC", order_id="QSL-1", waybill_no="SF100")
    db_session.add_all(
        [
            CallsignBinding(callsign="BV2ABC", openid="openid-1", created_at=BOUND_AT),
            CallsignBinding(callsign="BV2ABC", openid="openid-2", created_at=BOUND_AT),
        ]
    )
    db_session.commit()


def test_latest_per_shipment_keeps_latest_accept_time():
    routes = [
        _route("SF100", "2024-05-01 10:00:00", "T1"),
        _route("SF100", "2024-05-01 12:00:00", "T3"),
        _route("SF100", "2024-05-01 11:00:00", "T2"),
        _route("SF200", None, "only"),
        _route(None, "2024-05-01 13:00:00", "no waybill"),
    ]
    selected = latest_per_shipment(routes)
    assert [(r.mailno, r.remark) for r in selected] == [("SF100", "T3"), ("SF200", "only")]


def test_template_data_marks_sandbox():
    route = _route("SF100", "2024-05-01 10:00:00", "Delivered")
    data = build_template_data(route, "BV2ABC", sandbox=True)
    assert data["first"]["value"].startswith(SANDBOX_PREFIX)
    assert "BV2ABC" in data["first"]["value"]
    assert data["keyword1"]["value"] == "SF100"
    assert data["keyword2"]["value"] == "Delivered"
    assert not build_template_data(route, "BV2ABC", sandbox=False)["first"]["value"].startswith(SANDBOX_PREFIX)


@pytest.mark.asyncio
async def test_one_notification_per_subscriber_with_latest_route(
    subscribed_card, session_factory, wechat_handler, wechat_requests
):
    client = WeChatClient(_config(), transport=httpx.MockTransport(wechat_handler))
    dispatcher = PushDispatcher(session_factory, client)
    routes = [
        _route("SF100", "2024-05-01 10:00:00", "T1"),
        _route("SF100", "2024-05-01 11:00:00", "T2"),
        _route("SF100", "2024-05-01 12:00:00", "T3"),
    ]

    report = await dispatcher.dispatch(routes)
    await dispatcher.close()

    assert (report.selected, report.sent, report.failed) == (1, 2, 0)
    messages = _sent_messages(wechat_requests)
    assert sorted(m["touser"] for m in messages) == ["openid-1", "openid-2"]
    assert all(m["data"]["keyword2"]["value"] == "T3" for m in messages)
    assert all(m["template_id"] == "tmpl-1" for m in messages)
    token_calls = [r for r in wechat_requests if r.url.path == "/cgi-bin/token"]
    assert len(token_calls) == 1


@pytest.mark.asyncio
async def test_callsign_resolved_by_order_id(db_session, seed_card, session_factory, wechat_handler, wechat_requests):
    seed_card(callsign="BV2ABC", order_id="QSL-1", waybill_no=None)
    db_session.add(CallsignBinding(callsign="BV2ABC", openid="openid-1", created_at=BOUND_AT))
    db_session.commit()
    dispatcher = PushDispatcher(session_factory, WeChatClient(_config(), transport=httpx.MockTransport(wechat_handler)))

    report = await dispatcher.dispatch([_route("SF999", "2024-05-01 10:00:00", "Picked up", orderid="QSL-1")])

    assert report.sent == 1


@pytest.mark.asyncio
async def test_failed_subscriber_does_not_block_others(subscribed_card, session_factory, wechat_requests):
    def handler(request):
        wechat_requests.append(request)
        if request.url.path == "/cgi-bin/token":
            return httpx.Response(200, json={"access_token": "access-token"})
        if json.loads(request.content)["touser"] == "openid-1":
            return httpx.Response(200, json={"errcode": 43004, "errmsg": "require subscribe"})
        return httpx.Response(200, json={"errcode": 0, "errmsg": "ok"})

    dispatcher = PushDispatcher(session_factory, WeChatClient(_config(), transport=httpx.MockTransport(handler)))
    report = await dispatcher.dispatch([_route("SF100", "2024-05-01 10:00:00", "T1")])

    assert (report.sent, report.failed) == (1, 1)


@pytest.mark.asyncio
async def test_token_failure_counts_every_subscriber_as_failed(subscribed_card, session_factory):
    def handler(request):
        return httpx.Response(200, json={"errcode": 40013, "errmsg": "invalid appid"})

    dispatcher = PushDispatcher(session_factory, WeChatClient(_config(), transport=httpx.MockTransport(handler)))
    report = await dispatcher.dispatch([_route("SF100", "2024-05-01 10:00:00", "T1")])

    assert (report.sent, report.failed) == (0, 2)


@pytest.mark.asyncio
async def test_unknown_waybill_sends_nothing(subscribed_card, session_factory, wechat_handler, wechat_requests):
    dispatcher = PushDispatcher(session_factory, WeChatClient(_config(), transport=httpx.MockTransport(wechat_handler)))
    report = await dispatcher.dispatch([_route("SF404", "2024-05-01 10:00:00", "T1")])

    assert report.sent == 0
    assert wechat_requests == []


@pytest.mark.asyncio
async def test_disabled_without_template(subscribed_card, session_factory, wechat_handler, wechat_requests):
    dispatcher = PushDispatcher(
        session_factory,
        WeChatClient(_config(template_id=None), transport=httpx.MockTransport(wechat_handler)),
    )
    assert not dispatcher.enabled

    report = await dispatcher.dispatch([_route("SF100", "2024-05-01 10:00:00", "T1")])
    assert report.selected == 0
    assert wechat_requests == []


@pytest.mark.asyncio
async def test_background_dispatch_swallows_errors(mocker, session_factory):
    dispatcher = PushDispatcher(session_factory, WeChatClient(_config()))
    mocker.patch.object(dispatcher, "dispatch", side_effect=RuntimeError("boom"))
    close = mocker.patch.object(dispatcher, "close", new_callable=mocker.AsyncMock)

    await dispatch_in_background(dispatcher, [_route("SF100", None, "T1")])

    close.assert_awaited_once()
