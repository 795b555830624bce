"""Huobi linear-swap contract list (drives the Huobi subscription set)."""

from __future__ import annotations

import asyncio
import http.client
import json
import logging
import urllib.request
from typing import Any

from liquidation_relay.errors import PairListError

logger = logging.getLogger(__name__)

HUOBI_CONTRACT_INFO_URL = "https://api.hbdm.com/linear-swap-api/v1/swap_contract_info"


def parse_contract_codes(body: Any, quote_suffix: str = "-USDT") -> list[str]:
    """Extract sorted, unique contract codes ending with ``quote_suffix``.

    Raises:
        PairListError: If the response is not a successful contract list
    """
    if not isinstance(body, dict) or body.get("status") not in (None, "ok"):
        raise PairListError(f"Unexpected contract info response: {str(body)[:200]}")
    data = body.get("data")
    if not isinstance(data, list):
        raise PairListError("Contract info response has no data list")

    suffix = quote_suffix.upper()
    codes = {
        entry["contract_code"].upper()
        for entry in data
        if isinstance(entry, dict) and isinstance(entry.get("contract_code"), str)
    }
    return sorted(code for code in codes if code.endswith(suffix))


class HuobiPairSource:
    """Fetches tradable Huobi linear-swap contracts over REST."""

    def __init__(
        self,
        url: str = HUOBI_CONTRACT_INFO_URL,
        quote_suffix: str = "-USDT",
        timeout: float = 10.0,
    ) -> None:
        self._url = url
        self._quote_suffix = quote_suffix
        self._timeout = timeout

    async def fetch_instruments(self) -> list[str]:
        """Get the current contract list.

        Returns:
            Contract codes such as ``["BTC-USDT", "ETH-USDT"]``

        Raises:
            PairListError: On network, HTTP or payload errors
        """
        body = await asyncio.to_thread(self._get)
        instruments = parse_contract_codes(body, self._quote_suffix)
        logger.info(f"Fetched {len(instruments)} Huobi contracts")
        return instruments

    def _get(self) -> Any:
        request = urllib.request.Request(self._url, method="GET")
        # URLError and timeouts are OSError; a truncated body raises HTTPException
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                return json.loads(response.read().decode("utf-8"))
        except (OSError, http.client.HTTPException, ValueError) as exc:
            raise PairListError(f"Contract info request failed: {exc}") from exc
