"""Test environment-driven configuration."""

import pytest

from liquidation_relay.config import Config, TelegramConfig
from liquidation_relay.core.types import Exchange, RatePolicy
from liquidation_relay.errors import ConfigError

ENV_NAMES = [
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_TOKEN",
    "TELEGRAM_CHAT_ID",
    "CHAT_ID",
    "TELEGRAM_API_URL",
    "DELIVERY_RATE_POLICY",
    "DELIVERY_BUCKET_CAPACITY",
    "DELIVERY_REFILL_RATE",
    "DELIVERY_DRAIN_INTERVAL",
    "DELIVERY_MAX_MESSAGE_CHARS",
    "DELIVERY_BATCH_SIZE",
    "DELIVERY_MAX_RETRIES",
    "DELIVERY_RETRY_BASE_DELAY",
    "STREAM_EXCHANGES",
    "RECONNECT_BASE_DELAY",
    "RECONNECT_MAX_EXPONENT",
    "HUOBI_PAIR_REFRESH_INTERVAL",
    "HUOBI_QUOTE_SUFFIX",
    "STATS_SHORT_HORIZONS",
    "STATS_SHORT_INTERVAL",
    "STATS_LONG_HORIZONS",
    "STATS_LONG_INTERVAL",
    "HOST",
    "PORT",
    "HEALTH_LOG_INTERVAL",
]


@pytest.fixture
def env(monkeypatch, tmp_path):
    """Clean environment and an empty .env file; returns a loader."""
    for name in ENV_NAMES:
        # setenv first so values loaded from .env are removed on teardown
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    env_file = tmp_path / ".env"
    env_file.write_text("")

    def _load(**values: str) -> Config:
        for name, value in values.items():
            monkeypatch.setenv(name, value)
        return Config.from_env(env_path=env_file)

    return _load


class TestDefaults:
    """Test values with nothing configured."""

    def test_defaults(self, env):
        config = env()
        assert not config.telegram.enabled
        assert config.delivery.rate_policy is RatePolicy.TOKEN_BUCKET
        assert config.delivery.bucket_capacity == 20.0
        assert config.delivery.max_message_chars == 4000
        assert config.streams.exchanges == [Exchange.OKX, Exchange.BINANCE, Exchange.HUOBI]
        assert config.streams.reconnect_max_exponent == 5
        assert config.stats.horizons_seconds == [300.0, 900.0, 1800.0, 3600.0]
        assert config.server.port == 8080


class TestOverrides:
    """Test environment overrides, aliases and clamping."""

    def test_legacy_credential_names(self, env):
        config = env(TELEGRAM_TOKEN="123:abc", CHAT_ID="-100")
        assert config.telegram.bot_token == "123:abc"
        assert config.telegram.chat_id == "-100"
        assert config.telegram.enabled

    def test_primary_name_wins(self, env):
        config = env(TELEGRAM_BOT_TOKEN="primary", TELEGRAM_TOKEN="legacy", CHAT_ID="1")
        assert config.telegram.bot_token == "primary"

    def test_dotenv_file(self, env, tmp_path):
        (tmp_path / ".env").write_text("TELEGRAM_BOT_TOKEN=from-file\nTELEGRAM_CHAT_ID=42\n")
        config = env()
        assert config.telegram.bot_token == "from-file"
        assert config.telegram.chat_id == "42"

    def test_fixed_interval_policy(self, env):
        config = env(DELIVERY_RATE_POLICY="Fixed_Interval")
        assert config.delivery.rate_policy is RatePolicy.FIXED_INTERVAL

    def test_unknown_policy_falls_back(self, env):
        config = env(DELIVERY_RATE_POLICY="leaky")
        assert config.delivery.rate_policy is RatePolicy.TOKEN_BUCKET

    def test_clamping_and_invalid_numbers(self, env):
        config = env(
            DELIVERY_MAX_MESSAGE_CHARS="10000",
            DELIVERY_BUCKET_CAPACITY="0",
            DELIVERY_BATCH_SIZE="abc",
            PORT="70000",
        )
        assert config.delivery.max_message_chars == 4096
        assert config.delivery.bucket_capacity == 1.0
        assert config.delivery.batch_size == 20
        assert config.server.port == 65535

    def test_exchanges(self, env):
        config = env(STREAM_EXCHANGES="binance, kraken,BINANCE,huobi")
        assert config.streams.exchanges == [Exchange.BINANCE, Exchange.HUOBI]

    def test_stats_horizons(self, env):
        config = env(STATS_SHORT_HORIZONS="1,5", STATS_LONG_HORIZONS="x,-3")
        assert config.stats.short_horizons == [1, 5]
        assert config.stats.long_horizons == [15, 30, 60]
        assert config.stats.horizons_seconds[:2] == [60.0, 300.0]


class TestTelegramConfig:
    """Test credential validation."""

    def test_require_reports_missing(self):
        with pytest.raises(ConfigError, match="TELEGRAM_CHAT_ID"):
            TelegramConfig(bot_token="123:abc", chat_id=" ").require()

    def test_require_passes(self):
        TelegramConfig(bot_token="123:abc", chat_id="-100").require()
