"""
In-memory exchange store with a mark-and-sweep reclamation thread.

Completed exchanges are not removed on completion; the next sweep drops
them, together with any exchange older than EXCHANGE_LIFETIME. Only engine
code mutates the store. is_empty() is safe to call from any thread.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional

from ..config import Keys, NetworkConfig

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOG = logging.getLogger(__name__)


@dataclass
class Exchange:
    """Tracked state of one in-flight request/response interaction."""
    key: Hashable
    created_at: float = field(default_factory=time.monotonic)
    completed: bool = False

    def age_ms(self, now: Optional[float] = None) -> float:
        now = time.monotonic() if now is None else now
        return (now - self.created_at) * 1000


class InMemoryExchangeStore:
    """Thread-safe store of in-flight exchanges keyed by token."""

    def __init__(self, config: NetworkConfig):
        self.exchange_lifetime = config.get_long(Keys.EXCHANGE_LIFETIME)
        self.sweep_interval = config.get_int(Keys.MARK_AND_SWEEP_INTERVAL)
        self._exchanges: Dict[Hashable, Exchange] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # -------------------------------------------------------------------------
    # Engine-side mutation
    # -------------------------------------------------------------------------

    def add(self, key: Hashable) -> Exchange:
        exchange = Exchange(key)
        with self._lock:
            if key in self._exchanges:
                raise ValueError(f"exchange {key!r} already registered")
            self._exchanges[key] = exchange
        LOG.debug("registered exchange %r", key)
        return exchange

    def complete(self, key: Hashable) -> bool:
        """Mark an exchange complete; the next sweep reclaims it."""
        with self._lock:
            exchange = self._exchanges.get(key)
            if exchange is None:
                return False
            exchange.completed = True
        LOG.debug("completed exchange %r", key)
        return True

    def remove(self, key: Hashable) -> Optional[Exchange]:
        with self._lock:
            return self._exchanges.pop(key, None)

    def get(self, key: Hashable) -> Optional[Exchange]:
        with self._lock:
            return self._exchanges.get(key)

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop completed and expired exchanges. Returns how many were dropped."""
        now = time.monotonic() if now is None else now
        with self._lock:
            stale = [
                key for key, exchange in self._exchanges.items()
                if exchange.completed or exchange.age_ms(now) >= self.exchange_lifetime
            ]
            for key in stale:
                del self._exchanges[key]
        if stale:
            LOG.debug("swept %d exchanges", len(stale))
        return len(stale)

    # -------------------------------------------------------------------------
    # Sweeper thread
    # -------------------------------------------------------------------------

    def start(self):
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._sweep_loop, name="exchange-sweeper", daemon=True
        )
        self._thread.start()

    def stop(self):
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join(timeout=5)
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None

    def _sweep_loop(self):
        # A zero interval would spin; sweep at least once a millisecond.
        interval = max(self.sweep_interval, 1) / 1000
        while not self._stop.wait(interval):
            self.sweep()

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def snapshot(self) -> List[Exchange]:
        with self._lock:
            return list(self._exchanges.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._exchanges)

    def is_empty(self) -> bool:
        """
        True if no exchange is held.

        Residual exchanges are dumped only when this logger's own level has
        been set to DEBUG or finer; a verbose root logger alone does not count.
        """
        remaining = self.snapshot()
        if remaining and LOG.level != logging.NOTSET and LOG.isEnabledFor(logging.DEBUG):
            self.dump(remaining)
        return not remaining

    def dump(self, exchanges: Optional[List[Exchange]] = None):
        exchanges = self.snapshot() if exchanges is None else exchanges
        LOG.debug("%d exchanges remaining", len(exchanges))
        if LOG.isEnabledFor(TRACE):
            now = time.monotonic()
            for exchange in exchanges:
                LOG.log(
                    TRACE, "  exchange %r: completed=%s age=%.0fms",
                    exchange.key, exchange.completed, exchange.age_ms(now)
                )
