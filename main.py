"""Liquidation Relay - entry point.

This relay:
1. Subscribes to the public liquidation feeds of OKX, Binance and Huobi
2. Normalizes every liquidation into one chat line
3. Keeps rolling 5m/15m/30m/60m statistics and posts periodic summaries
4. Delivers everything to one Telegram chat through a rate-limited queue
5. Serves GET /health for liveness probes

Configuration comes from environment variables (see .env.example).
"""

from liquidation_relay.app import main

if __name__ == "__main__":
    main()
