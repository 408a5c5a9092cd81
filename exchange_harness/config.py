"""
Network Configuration for the Exchange Engine

Key/value source for the timing and sizing settings the engine and the
harness read. Values are non-negative integers (milliseconds or bytes).

Usage:
    from exchange_harness.config import NetworkConfig, Keys

    config = NetworkConfig().set(Keys.EXCHANGE_LIFETIME, 200)
    lifetime = config.get_long(Keys.EXCHANGE_LIFETIME)

Environment Variables:
    COAP_EXCHANGE_LIFETIME: overrides Keys.EXCHANGE_LIFETIME in from_env()
    COAP_MARK_AND_SWEEP_INTERVAL: overrides Keys.MARK_AND_SWEEP_INTERVAL
    (any key in Keys can be overridden with the COAP_ prefix)
"""

import os
from typing import Dict, Mapping, Optional


class ConfigurationError(KeyError):
    """Raised when a required configuration key is absent."""
    pass


class Keys:
    """Well-known configuration keys."""
    EXCHANGE_LIFETIME = "EXCHANGE_LIFETIME"
    MARK_AND_SWEEP_INTERVAL = "MARK_AND_SWEEP_INTERVAL"
    BLOCKWISE_STATUS_LIFETIME = "BLOCKWISE_STATUS_LIFETIME"
    PREFERRED_BLOCK_SIZE = "PREFERRED_BLOCK_SIZE"


# =============================================================================
# Defaults
# =============================================================================

DEFAULTS: Dict[str, int] = {
    Keys.EXCHANGE_LIFETIME: 247_000,        # RFC 7252 EXCHANGE_LIFETIME
    Keys.MARK_AND_SWEEP_INTERVAL: 10_000,
    Keys.BLOCKWISE_STATUS_LIFETIME: 300_000,
    Keys.PREFERRED_BLOCK_SIZE: 512,
}

ENV_PREFIX = "COAP_"


class NetworkConfig:
    """
    Mutable key/value configuration.

    Lookups of absent keys raise ConfigurationError rather than falling back
    to a default, so a test that removed a key sees the failure directly.
    """

    def __init__(self, values: Optional[Mapping[str, int]] = None, use_defaults: bool = True):
        self._values: Dict[str, int] = dict(DEFAULTS) if use_defaults else {}
        if values:
            for key, value in values.items():
                self.set(key, value)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "NetworkConfig":
        """Build a config from the defaults overlaid with COAP_<KEY> variables."""
        environ = os.environ if environ is None else environ
        config = cls()
        for name, raw in environ.items():
            if name.startswith(ENV_PREFIX):
                key = name[len(ENV_PREFIX):]
                if key in DEFAULTS:
                    config.set(key, int(raw))
        return config

    def set(self, key: str, value: int) -> "NetworkConfig":
        value = int(value)
        if value < 0:
            raise ValueError(f"{key} must be non-negative, got {value}")
        self._values[key] = value
        return self

    def remove(self, key: str) -> "NetworkConfig":
        self._values.pop(key, None)
        return self

    def _get(self, key: str) -> int:
        try:
            return self._values[key]
        except KeyError:
            raise ConfigurationError(f"missing configuration value for {key}") from None

    def get_long(self, key: str) -> int:
        return self._get(key)

    def get_int(self, key: str) -> int:
        return int(self._get(key))

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def as_dict(self) -> Dict[str, int]:
        return dict(self._values)

    def __repr__(self) -> str:
        return f"NetworkConfig({self._values!r})"
