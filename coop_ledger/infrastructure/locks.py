"""Per-cooperative write serialization"""

import threading
from typing import Dict


class CooperativeLocks:
    """Hands out one re-entrant lock per cooperative id.

    Owned by the application instance; writes to different cooperatives never
    contend, writes to the same cooperative run one at a time.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    def for_cooperative(self, cooperative_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(cooperative_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[cooperative_id] = lock
            return lock
