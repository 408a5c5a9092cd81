"""
Completion Assertions for Exchange Engine Tests

Call one of these at the end of a scenario to check that the engine has
released every exchange and blockwise transfer. Each waits as long as the
engine's configuration says reclamation may take, then asserts. If state is
left behind, the store logger is made verbose first so the store's dump of
residual exchanges ends up in the captured log.
"""

import logging
import threading
from typing import Optional

from .config import NetworkConfig
from .diagnostics import STORE_LOGGER, TRACE, LogLevelScope
from .instrumented import CoapTestEndpoint, ExchangeStore, describe_store
from .logger import get_logger
from .timing import read_timing
from .wait import wait_until_exchanges_reclaimed


def _fail(side: str, message: str, detail: str):
    get_logger().residual_state(side, detail)
    raise AssertionError(f"{message} ({detail})")


def assert_all_exchanges_completed(
    config: NetworkConfig,
    client_store: ExchangeStore,
    server_store: Optional[ExchangeStore] = None,
    cancel_event: Optional[threading.Event] = None
) -> None:
    """
    Assert that all exchanges in one or both stores are reclaimed.

    With a single store the check is reported as "message exchange store";
    with two, client and server sides are checked and reported separately.

    Raises:
        AssertionError: If a store still holds exchanges after the wait
        ConfigurationError: If the timing keys are missing from config
        WaitCancelled: If cancel_event is set during the wait
    """
    exchange_lifetime, sweep_interval = read_timing(config)

    if server_store is None:
        with LogLevelScope(STORE_LOGGER) as scope:
            wait_until_exchanges_reclaimed(
                exchange_lifetime, sweep_interval, client_store.is_empty, cancel_event
            )
            scope.elevate(logging.DEBUG)
            if not client_store.is_empty():
                _fail("store", "message exchange store still contains exchanges",
                      describe_store(client_store))
        return

    with LogLevelScope(STORE_LOGGER) as scope:
        wait_until_exchanges_reclaimed(
            exchange_lifetime, sweep_interval,
            lambda: client_store.is_empty() and server_store.is_empty(),
            cancel_event
        )
        scope.elevate(TRACE)
        if not client_store.is_empty():
            _fail("client", "Client side message exchange store still contains exchanges",
                  describe_store(client_store))
        if not server_store.is_empty():
            _fail("server", "Server side message exchange store still contains exchanges",
                  describe_store(server_store))


def assert_endpoint_completed(
    endpoint: CoapTestEndpoint,
    config: Optional[NetworkConfig] = None,
    cancel_event: Optional[threading.Event] = None
) -> None:
    """
    Assert that the endpoint's exchange store and blockwise layer are empty.

    config defaults to the endpoint's own configuration.
    """
    config = endpoint.config if config is None else config
    exchange_lifetime, sweep_interval = read_timing(config)

    with LogLevelScope(STORE_LOGGER) as scope:
        wait_until_exchanges_reclaimed(
            exchange_lifetime, sweep_interval, endpoint.is_empty, cancel_event
        )
        scope.elevate(logging.DEBUG)
        if not endpoint.is_empty():
            _fail("endpoint", "endpoint still contains states", endpoint.describe_state())


def assert_endpoints_completed(
    client: CoapTestEndpoint,
    server: CoapTestEndpoint,
    cancel_event: Optional[threading.Event] = None
) -> None:
    """
    Assert that both ends of a client/server scenario released their state.

    The longer of the two configured timings is used for the wait.
    """
    client_timing = read_timing(client.config)
    server_timing = read_timing(server.config)
    exchange_lifetime = max(client_timing[0], server_timing[0])
    sweep_interval = max(client_timing[1], server_timing[1])

    with LogLevelScope(STORE_LOGGER) as scope:
        wait_until_exchanges_reclaimed(
            exchange_lifetime, sweep_interval,
            lambda: client.is_empty() and server.is_empty(),
            cancel_event
        )
        scope.elevate(TRACE)
        if not client.is_empty():
            _fail("client", "Client side endpoint still contains states", client.describe_state())
        if not server.is_empty():
            _fail("server", "Server side endpoint still contains states", server.describe_state())
