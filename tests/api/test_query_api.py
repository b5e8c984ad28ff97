# tests/api/test_query_api.py
"""Tests for captcha and callsign query endpoints."""

import json


class TestCallsignQuery:
    def test_unsigned_query_when_signing_disabled(self, client, seed_card):
        seed_card(metadata=json.dumps({"distribution": {"method": "bureau"}}))

        response = client.get("/api/callsigns/bv2abc")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["callsign"] == "BV2ABC"
        assert body["items"][0]["project_name"] == "2024 Contest"
        assert body["items"][0]["distribution"]["method"] == "bureau"

    def test_query_parameter_form(self, client, seed_card):
        seed_card()
        response = client.get("/api/query", params={"callsign": "BV2ABC"})
        assert response.status_code == 200
        assert len(response.json()["items"]) == 1

    def test_missing_callsign(self, client):
        response = client.get("/api/query")
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Missing callsign"}

    def test_signed_query_accepted(self, client, seed_card, signed_url):
        seed_card()
        response = client.get(signed_url("/api/callsigns/BV2ABC"))
        assert response.status_code == 200

    def test_signed_query_with_params(self, client, seed_card, signed_url):
        seed_card()
        response = client.get(signed_url("/api/query", {"callsign": "BV2ABC"}))
        assert response.status_code == 200
        assert response.json()["callsign"] == "BV2ABC"

    def test_unsigned_query_rejected_when_signing_enabled(self, client, signed_url):
        response = client.get("/api/callsigns/BV2ABC")
        assert response.status_code == 403
        assert response.json() == {"success": False, "message": "missing signature parameters"}

    def test_replayed_nonce_rejected(self, client, signed_url):
        url = signed_url("/api/callsigns/BV2ABC", nonce="fixed-nonce")
        assert client.get(url).status_code == 200

        replay = client.get(url)
        assert replay.status_code == 403
        assert replay.json()["message"] == "already processed"

    def test_tampered_signature_rejected(self, client, signed_url):
        url = signed_url("/api/callsigns/BV2ABC").replace("BV2ABC", "BV2XYZ")
        response = client.get(url)
        assert response.status_code == 403
        assert response.json()["message"] == "invalid signature"

    def test_rate_limit(self, client, test_settings):
        test_settings.rate_limit_max = 3
        statuses = [client.get("/api/callsigns/BV2ABC").status_code for _ in range(4)]
        assert statuses == [200, 200, 200, 429]

        body = client.get("/api/callsigns/BV2ABC").json()
        assert body["success"] is False
        assert 0 <= body["retry_after"] <= test_settings.rate_limit_window_seconds

    def test_rate_limit_uses_forwarded_address(self, client, test_settings):
        test_settings.rate_limit_max = 1
        assert client.get("/api/query?callsign=A", headers={"CF-Connecting-IP": "10.0.0.1"}).status_code == 200
        assert client.get("/api/query?callsign=A", headers={"CF-Connecting-IP": "10.0.0.2"}).status_code == 200
        assert client.get("/api/query?callsign=A", headers={"CF-Connecting-IP": "10.0.0.1"}).status_code == 429

    def test_no_store_disables_rate_limit(self, client, test_settings):
        test_settings.redis_url = None
        test_settings.rate_limit_max = 1
        assert all(client.get("/api/query?callsign=A").status_code == 200 for _ in range(3))


class TestCaptcha:
    def test_not_configured(self, client):
        response = client.get("/api/captcha")
        assert response.status_code == 503
        assert response.json() == {"success": False, "message": "Captcha is not enabled"}

    def test_issue_and_verify(self, client, test_settings):
        test_settings.captcha_secret = "captcha-secret"
        challenge = client.get("/api/captcha").json()
        assert challenge["question"].endswith("= ?")

        left, operator, right = challenge["question"].removesuffix(" = ?").split(" ")
        answer = int(left) + int(right) if operator == "+" else int(left) - int(right)

        ok = client.post("/api/captcha/verify", json={"token": challenge["token"], "answer": answer})
        assert ok.json() == {"success": True}

        wrong = client.post("/api/captcha/verify", json={"token": challenge["token"], "answer": answer + 1})
        assert wrong.status_code == 403
        assert wrong.json()["message"] == "Captcha wrong answer"

    def test_query_requires_captcha_when_configured(self, client, test_settings, seed_card):
        seed_card()
        test_settings.captcha_secret = "captcha-secret"
        test_settings.captcha_required_for_query = True

        rejected = client.get("/api/query", params={"callsign": "BV2ABC"})
        assert rejected.status_code == 403
        assert rejected.json()["message"] == "Captcha missing captcha parameters"

        challenge = client.get("/api/captcha").json()
        left, operator, right = challenge["question"].removesuffix(" = ?").split(" ")
        answer = int(left) + int(right) if operator == "+" else int(left) - int(right)
        accepted = client.get(
            "/api/query",
            params={"callsign": "BV2ABC", "captcha_token": challenge["token"], "captcha_answer": str(answer)},
        )
        assert accepted.status_code == 200
