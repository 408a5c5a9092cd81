"""
Reference exchange engine.

Just enough of a CoAP-style engine to be observed: stores, a lazily built
blockwise layer, a stack and an endpoint.
"""

from .blockwise import BlockwiseLayer
from .endpoint import CoapEndpoint
from .observe import InMemoryObservationStore
from .stack import CoapUdpStack, Components, Message
from .store import Exchange, InMemoryExchangeStore, TRACE

__all__ = [
    "BlockwiseLayer",
    "CoapEndpoint",
    "CoapUdpStack",
    "Components",
    "Exchange",
    "InMemoryExchangeStore",
    "InMemoryObservationStore",
    "Message",
    "TRACE",
]
