"""
Protocol stack.

The stack builds some of its layers lazily. Whoever needs to see those
internal components (tests, mostly) passes a component observer; it is called
with (kind, component) each time a component is built and must not alter it.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional

from ..config import Keys, NetworkConfig
from .blockwise import BlockwiseLayer

LOG = logging.getLogger(__name__)


class Components:
    """Kinds reported to component observers."""
    STACK = "stack"
    BLOCKWISE = "blockwise"


ComponentObserver = Callable[[str, Any], None]


@dataclass(frozen=True)
class Message:
    """Outbound message handed to the outbox."""
    key: Hashable
    kind: str
    payload: bytes = b""
    block: Optional[int] = None


class CoapUdpStack:

    def __init__(
        self,
        config: NetworkConfig,
        outbox: Callable[[Message], None],
        component_observer: Optional[ComponentObserver] = None
    ):
        self.config = config
        self.outbox = outbox
        self.block_size = config.get_int(Keys.PREFERRED_BLOCK_SIZE)
        self._component_observer = component_observer
        self._blockwise_layer: Optional[BlockwiseLayer] = None
        self._lock = threading.Lock()

    def create_blockwise_layer(self, config: NetworkConfig) -> BlockwiseLayer:
        return BlockwiseLayer(config)

    @property
    def blockwise_layer(self) -> Optional[BlockwiseLayer]:
        return self._blockwise_layer

    def _ensure_blockwise_layer(self) -> BlockwiseLayer:
        with self._lock:
            if self._blockwise_layer is None:
                layer = self.create_blockwise_layer(self.config)
                self._blockwise_layer = layer
                LOG.debug("created blockwise layer")
                if self._component_observer is not None:
                    self._component_observer(Components.BLOCKWISE, layer)
            return self._blockwise_layer

    def send_request(self, key: Hashable, payload: bytes = b""):
        if len(payload) <= self.block_size:
            self.outbox(Message(key, "request", payload))
            return
        layer = self._ensure_blockwise_layer()
        layer.open_transfer(key, len(payload))
        for number, offset in enumerate(range(0, len(payload), self.block_size)):
            self.outbox(Message(key, "request", payload[offset:offset + self.block_size], block=number))

    def receive_response(self, key: Hashable):
        if self._blockwise_layer is not None:
            self._blockwise_layer.close_transfer(key)

    def expire_transfers(self, now: Optional[float] = None) -> int:
        """Drop abandoned blockwise transfers. Returns how many were dropped."""
        layer = self._blockwise_layer
        if layer is None:
            return 0
        expired = layer.expire(now)
        if expired:
            LOG.debug("expired %d blockwise transfers", expired)
        return expired
