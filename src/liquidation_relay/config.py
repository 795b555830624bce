"""Configuration management for the liquidation relay."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from liquidation_relay.core.types import Exchange, RatePolicy
from liquidation_relay.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class TelegramConfig:
    """Telegram delivery destination."""

    bot_token: str = ""
    chat_id: str = ""
    api_url: str = "https://api.telegram.org"

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token.strip() and self.chat_id.strip())

    def require(self) -> None:
        """Raise ConfigError when delivery credentials are missing."""
        missing = [
            name
            for name, value in (
                ("TELEGRAM_BOT_TOKEN", self.bot_token),
                ("TELEGRAM_CHAT_ID", self.chat_id),
            )
            if not value.strip()
        ]
        if missing:
            raise ConfigError(f"Missing delivery credentials: {', '.join(missing)}")


@dataclass
class DeliveryConfig:
    """Outbound queue tunables."""

    rate_policy: RatePolicy = RatePolicy.TOKEN_BUCKET
    bucket_capacity: float = 20.0
    refill_rate: float = 1.0  # Tokens per second
    drain_interval: float = 1.0  # Seconds between drain cycles
    max_message_chars: int = 4000  # Bot API text limit
    batch_size: int = 20  # Max messages per payload; 1 disables batching
    max_retries: int = 3
    retry_base_delay: float = 1.0


@dataclass
class StreamConfig:
    """Venue connection parameters."""

    exchanges: list[Exchange] = field(
        default_factory=lambda: [Exchange.OKX, Exchange.BINANCE, Exchange.HUOBI]
    )
    reconnect_base_delay: float = 1.0
    reconnect_max_exponent: int = 5  # Max delay = base * 32
    huobi_pair_refresh_interval: float = 3600.0
    huobi_quote_suffix: str = "-USDT"


@dataclass
class StatsConfig:
    """Sliding-window report schedule (horizons in minutes, intervals in seconds)."""

    short_horizons: list[int] = field(default_factory=lambda: [5])
    short_interval: float = 300.0
    long_horizons: list[int] = field(default_factory=lambda: [15, 30, 60])
    long_interval: float = 1800.0

    @property
    def horizons_seconds(self) -> list[float]:
        return sorted({m * 60.0 for m in [*self.short_horizons, *self.long_horizons]})


@dataclass
class ServerConfig:
    """Health endpoint and health log."""

    host: str = "0.0.0.0"
    port: int = 8080
    health_log_interval: float = 60.0


@dataclass
class Config:
    """Main configuration container."""

    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    delivery: DeliveryConfig = field(default_factory=DeliveryConfig)
    streams: StreamConfig = field(default_factory=StreamConfig)
    stats: StatsConfig = field(default_factory=StatsConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_env(cls, env_path: Path | None = None) -> "Config":
        """Load configuration from environment variables.

        Args:
            env_path: Path to .env file (optional)

        Returns:
            Config instance populated from environment
        """
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        telegram = TelegramConfig(
            bot_token=_first_env("TELEGRAM_BOT_TOKEN", "TELEGRAM_TOKEN"),
            chat_id=_first_env("TELEGRAM_CHAT_ID", "CHAT_ID"),
            api_url=os.getenv("TELEGRAM_API_URL", "https://api.telegram.org"),
        )

        policy_raw = os.getenv("DELIVERY_RATE_POLICY", "token_bucket").strip().lower()
        try:
            rate_policy = RatePolicy(policy_raw)
        except ValueError:
            logger.warning(f"Unknown DELIVERY_RATE_POLICY {policy_raw!r}, using token_bucket")
            rate_policy = RatePolicy.TOKEN_BUCKET

        delivery = DeliveryConfig(
            rate_policy=rate_policy,
            bucket_capacity=_env_float("DELIVERY_BUCKET_CAPACITY", 20.0, minimum=1.0),
            refill_rate=_env_float("DELIVERY_REFILL_RATE", 1.0, minimum=0.01),
            drain_interval=_env_float("DELIVERY_DRAIN_INTERVAL", 1.0, minimum=0.05),
            # Bot API rejects texts over 4096 characters
            max_message_chars=int(
                _env_float("DELIVERY_MAX_MESSAGE_CHARS", 4000, minimum=100, maximum=4096)
            ),
            batch_size=int(_env_float("DELIVERY_BATCH_SIZE", 20, minimum=1)),
            max_retries=int(_env_float("DELIVERY_MAX_RETRIES", 3, minimum=0, maximum=10)),
            retry_base_delay=_env_float("DELIVERY_RETRY_BASE_DELAY", 1.0, minimum=0.0),
        )

        streams = StreamConfig(
            exchanges=_env_exchanges("STREAM_EXCHANGES", "okx,binance,huobi"),
            reconnect_base_delay=_env_float("RECONNECT_BASE_DELAY", 1.0, minimum=0.1),
            reconnect_max_exponent=int(
                _env_float("RECONNECT_MAX_EXPONENT", 5, minimum=0, maximum=10)
            ),
            huobi_pair_refresh_interval=_env_float(
                "HUOBI_PAIR_REFRESH_INTERVAL", 3600.0, minimum=60.0
            ),
            huobi_quote_suffix=os.getenv("HUOBI_QUOTE_SUFFIX", "-USDT").strip().upper(),
        )

        stats = StatsConfig(
            short_horizons=_env_minutes("STATS_SHORT_HORIZONS", [5]),
            short_interval=_env_float("STATS_SHORT_INTERVAL", 300.0, minimum=1.0),
            long_horizons=_env_minutes("STATS_LONG_HORIZONS", [15, 30, 60]),
            long_interval=_env_float("STATS_LONG_INTERVAL", 1800.0, minimum=1.0),
        )

        server = ServerConfig(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(_env_float("PORT", 8080, minimum=1, maximum=65535)),
            health_log_interval=_env_float("HEALTH_LOG_INTERVAL", 60.0, minimum=1.0),
        )

        return cls(
            telegram=telegram,
            delivery=delivery,
            streams=streams,
            stats=stats,
            server=server,
        )


def _first_env(*names: str) -> str:
    for name in names:
        value = os.getenv(name, "").strip()
        if value:
            return value
    return ""


def _env_float(
    name: str,
    default: float,
    minimum: float | None = None,
    maximum: float | None = None,
) -> float:
    """Read a number, falling back to ``default`` and clamping to bounds."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return float(default)
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}, using {default}")
        return float(default)
    if minimum is not None:
        value = max(value, minimum)
    if maximum is not None:
        value = min(value, maximum)
    return value


def _env_minutes(name: str, default: list[int]) -> list[int]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return list(default)
    minutes = []
    for part in raw.split(","):
        part = part.strip()
        if part.isdigit() and int(part) > 0:
            minutes.append(int(part))
    return minutes or list(default)


def _env_exchanges(name: str, default: str) -> list[Exchange]:
    exchanges = []
    for part in os.getenv(name, default).split(","):
        part = part.strip().lower()
        if not part:
            continue
        try:
            exchange = Exchange(part)
        except ValueError:
            logger.warning(f"Unsupported exchange in {name}: {part!r}")
            continue
        if exchange not in exchanges:
            exchanges.append(exchange)
    return exchanges
