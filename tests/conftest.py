"""
Exchange Harness - Test Configuration and Determinism Utilities

Deterministic token generation and shared fixtures, so scenarios produce
the same exchange keys on every run.

Usage:
    def test_something(next_token):
        token = next_token()  # Returns "token_00001"

Environment Variables:
    TEST_SEED: Master seed for all random operations (default: 42)
"""

import logging
import os
import random
import threading
from typing import Optional

import pytest

from exchange_harness import Keys, NetworkConfig, CoapTestEndpoint
from exchange_harness.diagnostics import STORE_LOGGER
from exchange_harness.logger import close_all_loggers

# =============================================================================
# Configuration
# =============================================================================

DEFAULT_SEED = 42
MASTER_SEED = int(os.environ.get("TEST_SEED", str(DEFAULT_SEED)))

# Short timings keep completion waits well under a second.
FAST_EXCHANGE_LIFETIME = 200
FAST_SWEEP_INTERVAL = 100

# =============================================================================
# Deterministic ID Generation
# =============================================================================

class IDGenerator:
    """
    Generates deterministic, sequential test IDs.

    IDs are of the form: "{prefix}_{counter:05d}"
    """

    def __init__(self):
        self._counters: dict = {}
        self._lock = threading.Lock()

    def get_id(self, prefix: str = "test") -> str:
        with self._lock:
            if prefix not in self._counters:
                self._counters[prefix] = 0
            self._counters[prefix] += 1
            return f"{prefix}_{self._counters[prefix]:05d}"

    def reset(self):
        """Reset all counters to zero."""
        with self._lock:
            self._counters.clear()


_id_generator: Optional[IDGenerator] = None
_id_generator_lock = threading.Lock()


def get_test_id(prefix: str = "test") -> str:
    """
    Get a deterministic test ID.

    Example:
        get_test_id("token")     # "token_00001"
        get_test_id("token")     # "token_00002"
    """
    global _id_generator

    with _id_generator_lock:
        if _id_generator is None:
            _id_generator = IDGenerator()
        return _id_generator.get_id(prefix)


def reset_test_ids():
    """Reset all ID counters to zero."""
    with _id_generator_lock:
        if _id_generator is not None:
            _id_generator.reset()


def seeded_payload(size: int) -> bytes:
    """Deterministic payload bytes derived from TEST_SEED."""
    rng = random.Random(MASTER_SEED + size)
    return bytes(rng.getrandbits(8) for _ in range(size))


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def _fresh_ids():
    reset_test_ids()
    yield


@pytest.fixture(scope="session", autouse=True)
def _close_harness_loggers():
    yield
    close_all_loggers()


@pytest.fixture
def fast_config() -> NetworkConfig:
    return NetworkConfig({
        Keys.EXCHANGE_LIFETIME: FAST_EXCHANGE_LIFETIME,
        Keys.MARK_AND_SWEEP_INTERVAL: FAST_SWEEP_INTERVAL,
        Keys.PREFERRED_BLOCK_SIZE: 64,
    })


@pytest.fixture
def store_logger_level():
    """Pin the store logger level for the test and restore it afterwards."""
    saved = STORE_LOGGER.level
    STORE_LOGGER.setLevel(logging.WARNING)
    yield logging.WARNING
    STORE_LOGGER.setLevel(saved)


@pytest.fixture
def client_endpoint(fast_config):
    with CoapTestEndpoint(("127.0.0.1", 5683), fast_config) as endpoint:
        yield endpoint


@pytest.fixture
def server_endpoint(fast_config):
    with CoapTestEndpoint(("127.0.0.1", 5684), fast_config) as endpoint:
        yield endpoint


@pytest.fixture
def next_token():
    """Factory for deterministic exchange tokens."""
    return lambda: get_test_id("token")


@pytest.fixture
def payload():
    return seeded_payload
