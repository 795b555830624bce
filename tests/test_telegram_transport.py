"""Test the Telegram transport and Bot API response parsing."""

import io
import json
import urllib.error

import pytest

from liquidation_relay.notifications.telegram import DeliveryResult, TelegramTransport


class FakeResponse:
    def __init__(self, body: dict) -> None:
        self._raw = json.dumps(body).encode("utf-8")

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def read(self) -> bytes:
        return self._raw


class TestDeliveryResult:
    """Test Bot API body parsing."""

    def test_ok(self):
        result = DeliveryResult.from_response({"ok": True, "result": {"message_id": 1}})
        assert result.ok
        assert not result.rate_limited

    def test_retry_after_in_parameters(self):
        """429 bodies carry the hint under ``parameters``."""
        result = DeliveryResult.from_response(
            {
                "ok": False,
                "error_code": 429,
                "description": "Too Many Requests: retry after 7",
                "parameters": {"retry_after": 7},
            }
        )
        assert result.rate_limited
        assert result.retry_after == 7.0
        assert result.description.startswith("Too Many Requests")

    def test_top_level_retry_after(self):
        result = DeliveryResult.from_response({"ok": False, "error_code": "429", "retry_after": "3"})
        assert result.error_code == 429
        assert result.retry_after == 3.0

    def test_other_failure(self):
        result = DeliveryResult.from_response(
            {"ok": False, "error_code": 400, "description": "Bad Request: chat not found"}
        )
        assert not result.rate_limited
        assert result.retry_after is None


class TestTelegramTransport:
    """Test sendMessage over a patched urlopen."""

    @pytest.mark.asyncio
    async def test_send_posts_json(self, monkeypatch):
        captured = {}

        def fake_urlopen(request, timeout):
            captured["url"] = request.full_url
            captured["body"] = json.loads(request.data.decode("utf-8"))
            return FakeResponse({"ok": True, "result": {}})

        monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)
        transport = TelegramTransport("123:abc", "-100", api_url="https://bot.example/")

        result = await transport.send("🔴 #BTC-USDT Liquidated Long: $130,000.00 at $65,000")

        assert result.ok
        assert captured["url"] == "https://bot.example/bot123:abc/sendMessage"
        assert captured["body"]["chat_id"] == "-100"
        assert captured["body"]["text"].startswith("🔴 #BTC-USDT")

    @pytest.mark.asyncio
    async def test_http_429_is_a_result(self, monkeypatch):
        body = json.dumps(
            {"ok": False, "error_code": 429, "parameters": {"retry_after": 5}}
        ).encode("utf-8")

        def fake_urlopen(request, timeout):
            raise urllib.error.HTTPError(
                request.full_url, 429, "Too Many Requests", hdrs=None, fp=io.BytesIO(body)
            )

        monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)
        result = await TelegramTransport("t", "c").send("hello")

        assert not result.ok
        assert result.rate_limited
        assert result.retry_after == 5.0

    @pytest.mark.asyncio
    async def test_http_error_without_json(self, monkeypatch):
        def fake_urlopen(request, timeout):
            raise urllib.error.HTTPError(
                request.full_url, 502, "Bad Gateway", hdrs=None, fp=io.BytesIO(b"<html>")
            )

        monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)
        result = await TelegramTransport("t", "c").send("hello")

        assert not result.ok
        assert result.error_code == 502

    @pytest.mark.asyncio
    async def test_network_error_is_a_result(self, monkeypatch):
        def fake_urlopen(request, timeout):
            raise urllib.error.URLError("connection reset")

        monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)
        result = await TelegramTransport("t", "c").send("hello")

        assert not result.ok
        assert result.error_code is None

    @pytest.mark.asyncio
    async def test_disabled_without_credentials(self, monkeypatch):
        def fake_urlopen(request, timeout):
            raise AssertionError("no request expected")

        monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)
        transport = TelegramTransport("  ", "-100")

        assert not transport.enabled
        result = await transport.send("hello")
        assert not result.ok
