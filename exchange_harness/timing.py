"""
Wait budget for exchange reclamation.

An exchange is kept for at most the exchange lifetime and is dropped by the
next mark-and-sweep pass after that, so the worst case is lifetime + one sweep
interval. EXTRA_WAIT_MS covers scheduling jitter on loaded CI hosts.
"""

from dataclasses import dataclass
from typing import Tuple

from .config import Keys, NetworkConfig

EXTRA_WAIT_MS = 300
POLLS_PER_BUDGET = 10


@dataclass(frozen=True)
class WaitBudget:
    """How long to wait and how often to look."""
    timeout_ms: int
    poll_interval_ms: int

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000


def compute_wait_budget(exchange_lifetime: int, sweep_interval: int) -> WaitBudget:
    """
    Derive the wait budget from the exchange lifetime and sweep interval.

    Args:
        exchange_lifetime: Exchange lifetime in milliseconds (>= 0)
        sweep_interval: Mark-and-sweep interval in milliseconds (>= 0)

    Returns:
        WaitBudget with timeout = lifetime + sweep + 300 and a poll interval
        of a tenth of that.
    """
    if exchange_lifetime < 0:
        raise ValueError(f"exchange lifetime must be non-negative, got {exchange_lifetime}")
    if sweep_interval < 0:
        raise ValueError(f"sweep interval must be non-negative, got {sweep_interval}")
    timeout_ms = int(exchange_lifetime) + int(sweep_interval) + EXTRA_WAIT_MS
    return WaitBudget(timeout_ms, timeout_ms // POLLS_PER_BUDGET)


def read_timing(config: NetworkConfig) -> Tuple[int, int]:
    """Return (exchange_lifetime, sweep_interval) from config."""
    exchange_lifetime = int(config.get_long(Keys.EXCHANGE_LIFETIME))
    sweep_interval = config.get_int(Keys.MARK_AND_SWEEP_INTERVAL)
    return exchange_lifetime, sweep_interval


def wait_budget_for(config: NetworkConfig) -> WaitBudget:
    """
    Wait budget for an engine running with config.

    Raises:
        ConfigurationError: If either timing key is missing
    """
    return compute_wait_budget(*read_timing(config))
