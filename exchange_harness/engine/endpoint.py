"""
Network endpoint.

Binds an address, owns the exchange and observation stores and builds its
stack on start(). There is no socket underneath: outbound messages are
recorded in sent_messages. While started, abandoned blockwise transfers are
expired on every MARK_AND_SWEEP_INTERVAL, alongside the store's own sweep.
"""

import logging
import threading
from typing import Hashable, List, Optional, Tuple

from ..config import Keys, NetworkConfig
from .observe import InMemoryObservationStore
from .stack import Components, ComponentObserver, CoapUdpStack, Message
from .store import InMemoryExchangeStore

LOG = logging.getLogger(__name__)

Address = Tuple[str, int]


class CoapEndpoint:

    def __init__(
        self,
        bind: Address,
        config: NetworkConfig,
        observation_store: InMemoryObservationStore,
        exchange_store: InMemoryExchangeStore,
        component_observer: Optional[ComponentObserver] = None
    ):
        self.bind = bind
        self.config = config
        self.observation_store = observation_store
        self.exchange_store = exchange_store
        self.sweep_interval = config.get_int(Keys.MARK_AND_SWEEP_INTERVAL)
        self._component_observer = component_observer
        self._stack: Optional[CoapUdpStack] = None
        self._sent: List[Message] = []
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    def create_udp_stack(self, config: NetworkConfig, outbox) -> CoapUdpStack:
        return CoapUdpStack(config, outbox, self._component_observer)

    @property
    def stack(self) -> Optional[CoapUdpStack]:
        return self._stack

    @property
    def started(self) -> bool:
        return self.exchange_store.running

    def start(self):
        if self._stack is None:
            self._stack = self.create_udp_stack(self.config, self._send)
            if self._component_observer is not None:
                self._component_observer(Components.STACK, self._stack)
        self.exchange_store.start()
        if self._sweeper is None:
            self._stop.clear()
            self._sweeper = threading.Thread(
                target=self._sweep_loop, name="blockwise-sweeper", daemon=True
            )
            self._sweeper.start()
        LOG.debug("endpoint %s:%d started", *self.bind)

    def stop(self):
        if self._sweeper is not None:
            self._stop.set()
            self._sweeper.join(timeout=5)
            self._sweeper = None
        self.exchange_store.stop()
        LOG.debug("endpoint %s:%d stopped", *self.bind)

    def _sweep_loop(self):
        interval = max(self.sweep_interval, 1) / 1000
        while not self._stop.wait(interval):
            self._stack.expire_transfers()

    def _send(self, message: Message):
        with self._lock:
            self._sent.append(message)

    @property
    def sent_messages(self) -> List[Message]:
        with self._lock:
            return list(self._sent)

    def _require_stack(self) -> CoapUdpStack:
        if self._stack is None:
            raise RuntimeError(f"endpoint {self.bind[0]}:{self.bind[1]} not started")
        return self._stack

    def send_request(self, key: Hashable, payload: bytes = b""):
        stack = self._require_stack()
        self.exchange_store.add(key)
        stack.send_request(key, payload)

    def receive_response(self, key: Hashable):
        stack = self._require_stack()
        stack.receive_response(key)
        self.exchange_store.complete(key)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
