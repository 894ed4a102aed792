from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from capclient.credentials import CredentialStore
from capclient.errors import LockUnavailable
from capclient.http_client import Clock


class ClientState:
    """Mutable state shared by the foreground API and the keep-alive thread.

    Everything except the session-active flag must only be touched inside
    ``locked()``. The flag is an Event so the keeper can poll it lock-free.
    """

    def __init__(self, lock_timeout: Optional[float] = 60.0, clock: Clock = time.monotonic) -> None:
        self.clock = clock
        self.lock_timeout = lock_timeout
        self.credentials = CredentialStore()
        self.last_request_at: Optional[float] = None
        self.current_account_id = ""
        self._lock = threading.Lock()
        self._active = threading.Event()

    @contextmanager
    def locked(self) -> Iterator["ClientState"]:
        timeout = -1 if self.lock_timeout is None else self.lock_timeout
        if not self._lock.acquire(timeout=timeout):
            raise LockUnavailable(self.lock_timeout)
        try:
            yield self
        finally:
            self._lock.release()

    @property
    def session_active(self) -> bool:
        return self._active.is_set()

    def mark_active(self) -> None:
        self._active.set()

    def mark_inactive(self) -> None:
        self._active.clear()

    def idle_seconds(self) -> Optional[float]:
        if self.last_request_at is None:
            return None
        return self.clock() - self.last_request_at
