"""
Exchange Completion Harness

Test tooling that waits, within a configuration-derived budget, for an
asynchronous CoAP-style engine to release all of its exchanges, and fails
the test with diagnostics if it does not.
"""

from .config import ConfigurationError, Keys, NetworkConfig
from .logger import HarnessLogger, get_logger
from .timing import WaitBudget, compute_wait_budget, wait_budget_for
from .wait import (
    WaitCancelled,
    wait_for_condition,
    wait_until_exchanges_reclaimed
)
from .diagnostics import STORE_LOGGER, TRACE, LogLevelScope, elevated_log_level
from .instrumented import CoapTestEndpoint, CoapTestStack
from .assertions import (
    assert_all_exchanges_completed,
    assert_endpoint_completed,
    assert_endpoints_completed
)

__all__ = [
    "ConfigurationError",
    "Keys",
    "NetworkConfig",
    "HarnessLogger",
    "get_logger",
    "WaitBudget",
    "compute_wait_budget",
    "wait_budget_for",
    "WaitCancelled",
    "wait_for_condition",
    "wait_until_exchanges_reclaimed",
    "STORE_LOGGER",
    "TRACE",
    "LogLevelScope",
    "elevated_log_level",
    "CoapTestEndpoint",
    "CoapTestStack",
    "assert_all_exchanges_completed",
    "assert_endpoint_completed",
    "assert_endpoints_completed",
]
