# tests/api/test_route_push_api.py
"""Tests for the carrier route-push webhook."""

import json

import pytest
from sqlalchemy import func, select

from cardhub_gateway.models import CallsignBinding, RouteEvent


def _envelope(*routes):
    return {"Body": {"WaybillRoute": list(routes)}}


def _route_count(db):
    return db.execute(select(func.count()).select_from(RouteEvent)).scalar_one()


@pytest.fixture
def push_enabled(test_settings):
    test_settings.wechat_appid = "wx-app"
    test_settings.wechat_secret = "wx-secret"
    test_settings.wechat_template_id = "tmpl-1"


@pytest.fixture
def subscriber(db_session, seed_card):
    seed_card(callsign="BV2ABC", order_id="QSL-1", waybill_no="SF100")
    db_session.add(
        CallsignBinding(callsign="BV2ABC", openid="openid-1", created_at="2024-05-01T08:00:00.000+00:00")
    )
    db_session.commit()


def _sent(wechat_requests):
    return [
        json.loads(request.content)
        for request in wechat_requests
        if request.url.path == "/cgi-bin/message/template/send"
    ]


def test_acknowledges_and_stores_routes(client, db_session):
    payload = _envelope(
        {"id": "R1", "mailno": "SF100", "opCode": "50", "acceptTime": "2024-05-01 10:00:00", "remark": "Picked up"}
    )
    response = client.post("/api/sf/route-push", json=payload)

    assert response.status_code == 200
    assert response.json() == {"return_code": "0000", "return_msg": "success"}
    assert db_session.get(RouteEvent, "R1").remark == "Picked up"


def test_redelivery_is_idempotent(client, db_session):
    payload = _envelope({"id": "R1", "mailno": "SF100", "opCode": "50"})
    client.post("/api/sf/route-push", json=payload)
    response = client.post("/api/sf/route-push", json=payload)

    assert response.json()["return_code"] == "0000"
    assert _route_count(db_session) == 1


def test_invalid_json_gets_failure_code(client):
    response = client.post("/api/sf/route-push", content=b"<xml/>")
    assert response.status_code == 200
    assert response.json() == {"return_code": "1000", "return_msg": "invalid JSON"}


@pytest.mark.parametrize("body", [{}, {"Body": {}}, {"Body": {"WaybillRoute": "SF100"}}, []])
def test_unexpected_shapes_are_acknowledged(client, db_session, body):
    response = client.post("/api/sf/route-push", json=body)
    assert response.json()["return_code"] == "0000"
    assert _route_count(db_session) == 0


def test_storage_failure_still_acknowledged(client, mocker):
    mocker.patch(
        "cardhub_gateway.api.endpoints.route_push.WebhookIngestor.ingest",
        side_effect=RuntimeError("database gone"),
    )
    response = client.post("/api/sf/route-push", json=_envelope({"id": "R1", "mailno": "SF100"}))
    assert response.json()["return_code"] == "0000"


def test_fresh_routes_notify_subscribers_once(client, push_enabled, subscriber, wechat_requests):
    payload = _envelope(
        {"id": "R1", "mailno": "SF100", "opCode": "50", "acceptTime": "2024-05-01 10:00:00", "remark": "T1"},
        {"id": "R2", "mailno": "SF100", "opCode": "30", "acceptTime": "2024-05-01 11:00:00", "remark": "T2"},
        {"id": "R3", "mailno": "SF100", "opCode": "80", "acceptTime": "2024-05-01 12:00:00", "remark": "T3"},
    )
    client.post("/api/sf/route-push", json=payload)

    sent = _sent(wechat_requests)
    assert len(sent) == 1
    assert sent[0]["touser"] == "openid-1"
    assert sent[0]["data"]["keyword2"]["value"] == "T3"

    # Redelivery stores nothing new, so nobody is notified again.
    client.post("/api/sf/route-push", json=payload)
    assert len(_sent(wechat_requests)) == 1


def test_sandbox_notifications_are_marked(client, push_enabled, subscriber, wechat_requests):
    payload = _envelope({"id": "R9", "mailno": "SF100", "acceptTime": "2024-05-01 10:00:00", "remark": "T1"})
    response = client.post("/api/sf/route-push/sandbox", json=payload)

    assert response.json()["return_code"] == "0000"
    assert _sent(wechat_requests)[0]["data"]["first"]["value"].startswith("[Sandbox] ")


def test_no_push_without_credentials(client, subscriber, wechat_requests):
    client.post("/api/sf/route-push", json=_envelope({"id": "R1", "mailno": "SF100", "remark": "T1"}))
    assert wechat_requests == []


def test_id_less_routes_notify_with_latest(client, db_session, push_enabled, subscriber, wechat_requests):
    payload = _envelope(
        {"mailno": "SF100", "opCode": "30", "acceptTime": "2024-05-01 10:00:00", "remark": "T1"},
        {"mailno": "SF100", "opCode": "30", "acceptTime": "2024-05-01 11:00:00", "remark": "T2"},
        {"mailno": "SF100", "opCode": "30", "acceptTime": "2024-05-01 12:00:00", "remark": "T3"},
    )
    response = client.post("/api/sf/route-push", json=payload)

    assert response.json()["return_code"] == "0000"
    assert _route_count(db_session) == 3
    sent = _sent(wechat_requests)
    assert [message["data"]["keyword2"]["value"] for message in sent] == ["T3"]
