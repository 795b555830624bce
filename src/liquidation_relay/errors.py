"""Exception hierarchy for the liquidation relay."""


class RelayError(Exception):
    """Base class for relay errors."""


class ConfigError(RelayError):
    """Configuration is missing or invalid."""


class PairListError(RelayError):
    """Tradable pair list could not be fetched or parsed."""
