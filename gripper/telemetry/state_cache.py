"""Last polled gripper state, shared between the poller and the publisher."""

import threading
from typing import Optional, Tuple

from gripper.interface.device import DeviceState


class DeviceStateCache:
    """Single DeviceState slot behind one lock.

    The poller writes, the publisher and HTTP queries read. Snapshots are
    immutable and replaced wholesale, so a reader sees either nothing or
    exactly one poll's state. Never hold the lock across a device call.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state: Optional[DeviceState] = None
        self._update_count = 0

    def update(self, state: DeviceState) -> None:
        with self._lock:
            self._state = state
            self._update_count += 1

    def read(self) -> Optional[DeviceState]:
        """Blocking read. None until the first successful poll."""
        with self._lock:
            return self._state

    def try_read(self) -> Tuple[bool, Optional[DeviceState]]:
        """Non-blocking read. Returns (False, None) if a writer holds the lock."""
        if not self._lock.acquire(blocking=False):
            return False, None
        try:
            return True, self._state
        finally:
            self._lock.release()

    @property
    def has_state(self) -> bool:
        return self.read() is not None

    @property
    def update_count(self) -> int:
        return self._update_count
