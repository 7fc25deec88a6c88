import asyncio
import pytest
from unittest.mock import Mock, patch
from fastapi.testclient import TestClient
from api.relay import MISSING_CREDENTIALS, app


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def credentials(monkeypatch):
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "42")


@pytest.fixture
def no_credentials(monkeypatch):
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)
    monkeypatch.delenv("TELEGRAM_CHAT_ID", raising=False)


class TestAlertEndpoint:
    def test_missing_credentials_reported(self, client, no_credentials):
        with patch("api.relay.requests.post") as post:
            response = client.post("/alert", json={"message": "hi"})

        assert response.status_code == 200
        assert response.json() == {"ok": False, "error": MISSING_CREDENTIALS}
        post.assert_not_called()

    def test_forwards_to_telegram(self, client, credentials):
        telegram = Mock()
        telegram.json.return_value = {"ok": True, "result": {"message_id": 7}}
        with patch("api.relay.requests.post", return_value=telegram) as post:
            response = client.post("/alert", json={"message": "XRPUSD 1m crossed 0.618"})

        assert response.json() == {"ok": True, "result": {"message_id": 7}}
        args, kwargs = post.call_args
        assert args[0] == "https://api.telegram.org/bot123:abc/sendMessage"
        assert kwargs["json"] == {"chat_id": "42", "text": "XRPUSD 1m crossed 0.618"}

    def test_empty_message_placeholder(self, client, credentials):
        telegram = Mock()
        telegram.json.return_value = {"ok": True}
        with patch("api.relay.requests.post", return_value=telegram) as post:
            client.post("/alert", json={})

        assert post.call_args.kwargs["json"]["text"] == "(no message)"

    def test_transport_error_reported(self, client, credentials):
        with patch("api.relay.requests.post", side_effect=RuntimeError("boom")):
            response = client.post("/alert", json={"message": "hi"})

        assert response.json() == {"ok": False, "error": "boom"}

    def test_telegram_call_runs_off_the_event_loop(self, client, credentials):
        seen = {}

        def post(url, **kwargs):
            try:
                asyncio.get_running_loop()
                seen["on_loop"] = True
            except RuntimeError:
                seen["on_loop"] = False
            telegram = Mock()
            telegram.json.return_value = {"ok": True}
            return telegram

        with patch("api.relay.requests.post", side_effect=post):
            response = client.post("/alert", json={"message": "hi"})

        assert response.json() == {"ok": True}
        assert seen == {"on_loop": False}


class TestHealth:
    def test_configured(self, client, credentials):
        assert client.get("/health").json() == {"ok": True, "configured": True}

    def test_not_configured(self, client, no_credentials):
        assert client.get("/health").json() == {"ok": True, "configured": False}
