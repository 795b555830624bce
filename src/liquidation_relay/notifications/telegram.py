"""Telegram Bot API transport."""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

RATE_LIMIT_ERROR_CODE = 429


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one push to the chat API."""

    ok: bool
    error_code: int | None = None
    retry_after: float | None = None
    description: str = ""

    @property
    def rate_limited(self) -> bool:
        return self.error_code == RATE_LIMIT_ERROR_CODE

    @classmethod
    def from_response(cls, body: dict[str, Any]) -> DeliveryResult:
        """Parse a Bot API JSON body (``ok``, ``error_code``, ``retry_after``)."""
        if body.get("ok"):
            return cls(ok=True)
        parameters = body.get("parameters")
        retry_after = body.get("retry_after")
        if retry_after is None and isinstance(parameters, dict):
            retry_after = parameters.get("retry_after")
        return cls(
            ok=False,
            error_code=_optional_number(body.get("error_code"), int),
            retry_after=_optional_number(retry_after, float),
            description=str(body.get("description", "")),
        )


class TelegramTransport:
    """Send Telegram messages via Bot API."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        api_url: str = "https://api.telegram.org",
        timeout: float = 10.0,
    ) -> None:
        self._bot_token = bot_token.strip()
        self._chat_id = chat_id.strip()
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._enabled = bool(self._bot_token and self._chat_id)

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def send(self, text: str) -> DeliveryResult:
        """Push one text payload. Never raises for HTTP or network failures."""
        if not self._enabled:
            return DeliveryResult(ok=False, description="delivery disabled")
        try:
            return await asyncio.to_thread(self._post_message, text)
        except Exception as exc:
            logger.warning("Telegram message failed: %s", exc)
            return DeliveryResult(ok=False, description=str(exc))

    def _post_message(self, text: str) -> DeliveryResult:
        url = f"{self._api_url}/bot{self._bot_token}/sendMessage"
        payload = json.dumps(
            {
                "chat_id": self._chat_id,
                "text": text,
                "disable_web_page_preview": True,
            }
        ).encode("utf-8")
        request = urllib.request.Request(
            url,
            data=payload,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                return DeliveryResult.from_response(_read_json(response.read()))
        except urllib.error.HTTPError as exc:
            # Bot API error bodies carry the same JSON envelope.
            body = _read_json(exc.read())
            if not body:
                return DeliveryResult(ok=False, error_code=exc.code, description=str(exc))
            body.setdefault("error_code", exc.code)
            return DeliveryResult.from_response(body)


def _read_json(raw: bytes) -> dict[str, Any]:
    try:
        body = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


def _optional_number(value: Any, kind: type) -> Any:
    if value is None or isinstance(value, bool):
        return None
    try:
        return kind(value)
    except (TypeError, ValueError):
        return None
