"""
Blockwise transfer bookkeeping.

Tracks which multi-block transfers are open and drops the ones nobody closed
after BLOCKWISE_STATUS_LIFETIME. Block reassembly itself is not done here.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, Hashable, Optional

from ..config import Keys, NetworkConfig

LOG = logging.getLogger(__name__)


@dataclass
class TransferStatus:
    key: Hashable
    size: int
    block_size: int
    started_at: float = field(default_factory=time.monotonic)

    @property
    def blocks(self) -> int:
        return -(-self.size // self.block_size)


class BlockwiseLayer:

    def __init__(self, config: NetworkConfig):
        self.status_lifetime = config.get_long(Keys.BLOCKWISE_STATUS_LIFETIME)
        self.block_size = config.get_int(Keys.PREFERRED_BLOCK_SIZE)
        self._transfers: Dict[Hashable, TransferStatus] = {}
        self._lock = threading.Lock()

    def open_transfer(self, key: Hashable, size: int) -> TransferStatus:
        status = TransferStatus(key, size, self.block_size)
        with self._lock:
            self._transfers[key] = status
        LOG.debug("opened transfer %r (%d blocks)", key, status.blocks)
        return status

    def close_transfer(self, key: Hashable) -> Optional[TransferStatus]:
        with self._lock:
            return self._transfers.pop(key, None)

    def expire(self, now: Optional[float] = None) -> int:
        now = time.monotonic() if now is None else now
        limit = self.status_lifetime / 1000
        with self._lock:
            stale = [k for k, s in self._transfers.items() if now - s.started_at >= limit]
            for key in stale:
                del self._transfers[key]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._transfers)

    def is_empty(self) -> bool:
        with self._lock:
            return not self._transfers
