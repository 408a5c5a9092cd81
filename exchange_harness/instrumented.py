"""
Instrumented Stack and Endpoint

The engine builds its stack and blockwise layer internally and does not hand
them out. These wrappers register as the engine's component observer to keep
references to them, so a test can ask whether everything has been released.
"""

import threading
from typing import Any, Optional, Protocol

from .config import NetworkConfig
from .engine.blockwise import BlockwiseLayer
from .engine.endpoint import Address, CoapEndpoint
from .engine.observe import InMemoryObservationStore
from .engine.stack import Components, CoapUdpStack
from .engine.store import InMemoryExchangeStore


class ExchangeStore(Protocol):
    """All the completion checks need from an exchange store."""

    def is_empty(self) -> bool:
        ...


def describe_store(store: ExchangeStore) -> str:
    """Residual-state summary; the count is included when the store has one."""
    if hasattr(store, "__len__"):
        return f"{len(store)} exchanges"
    return "exchanges remaining"


class CoapTestStack:
    """
    Component observer capturing the stack and its blockwise layer.

    Captured components are returned to the engine untouched.
    """

    def __init__(self):
        self._stack: Optional[CoapUdpStack] = None
        self._blockwise_layer: Optional[BlockwiseLayer] = None
        self._lock = threading.Lock()

    def __call__(self, kind: str, component: Any):
        with self._lock:
            if kind == Components.STACK:
                self._stack = component
            elif kind == Components.BLOCKWISE:
                self._blockwise_layer = component

    @property
    def stack(self) -> Optional[CoapUdpStack]:
        with self._lock:
            return self._stack

    @property
    def blockwise_layer(self) -> Optional[BlockwiseLayer]:
        with self._lock:
            return self._blockwise_layer

    def is_empty(self) -> bool:
        layer = self.blockwise_layer
        return layer is None or layer.is_empty()


class CoapTestEndpoint:
    """
    Test-scoped endpoint exposing the stores and stack it was built with.

    Any attribute not defined here is looked up on the wrapped CoapEndpoint,
    so send_request(), receive_response() and friends work as usual.
    """

    def __init__(
        self,
        bind: Address,
        config: NetworkConfig,
        observation_store: Optional[InMemoryObservationStore] = None,
        exchange_store: Optional[InMemoryExchangeStore] = None
    ):
        if observation_store is None:
            observation_store = InMemoryObservationStore()
        if exchange_store is None:
            exchange_store = InMemoryExchangeStore(config)
        self._observation_store = observation_store
        self._exchange_store = exchange_store
        self._test_stack = CoapTestStack()
        self.endpoint = CoapEndpoint(
            bind,
            config,
            self._observation_store,
            self._exchange_store,
            component_observer=self._test_stack
        )

    def __getattr__(self, name):
        # Only reached for names not found on the wrapper itself.
        if name == "endpoint":
            raise AttributeError(name)
        return getattr(self.endpoint, name)

    @property
    def config(self) -> NetworkConfig:
        return self.endpoint.config

    @property
    def exchange_store(self) -> InMemoryExchangeStore:
        return self._exchange_store

    @property
    def observation_store(self) -> InMemoryObservationStore:
        return self._observation_store

    def get_stack(self) -> Optional[CoapTestStack]:
        """The stack observer, or None while the engine has not built a stack."""
        if self._test_stack.stack is None:
            return None
        return self._test_stack

    def is_empty(self) -> bool:
        stack = self.get_stack()
        return self._exchange_store.is_empty() and (stack is None or stack.is_empty())

    def describe_state(self) -> str:
        """Short summary of what the endpoint still holds."""
        layer = self._test_stack.blockwise_layer
        transfers = len(layer) if layer is not None else 0
        return f"{describe_store(self._exchange_store)}, {transfers} blockwise transfers"

    def __enter__(self):
        self.endpoint.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.endpoint.stop()
        return False
