"""In-memory store of active observe relations, keyed by token."""

import threading
from typing import Any, Dict, Hashable, Optional


class InMemoryObservationStore:

    def __init__(self):
        self._observations: Dict[Hashable, Any] = {}
        self._lock = threading.Lock()

    def add(self, key: Hashable, observation: Any):
        with self._lock:
            self._observations[key] = observation

    def remove(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            return self._observations.pop(key, None)

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            return self._observations.get(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._observations)
