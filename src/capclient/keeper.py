"""Background keep-alive for an open session."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from capclient.errors import CapitalError, LockUnavailable
from capclient.state import ClientState

logger = logging.getLogger(__name__)

SESSION_TIMEOUT_SECONDS = 600.0
KEEPALIVE_RATIO = 0.9
TICK_SECONDS = 0.2


class SessionKeeper:
    """Pings the API when the session has been idle for most of its lifetime.

    The thread wakes every ``tick`` seconds and exits when the session is no
    longer active or ``stop()`` is called. A failed ping is logged and the
    loop carries on, and so does a tick that could not get the client lock.
    """

    def __init__(
        self,
        state: ClientState,
        ping: Callable[[], Any],
        session_timeout: float = SESSION_TIMEOUT_SECONDS,
        ratio: float = KEEPALIVE_RATIO,
        tick: float = TICK_SECONDS,
    ) -> None:
        self.state = state
        self.threshold = session_timeout * ratio
        self.tick = tick
        self._ping = ping
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="capclient-keepalive", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def check_once(self) -> Any:
        """Run one iteration.

        Returns whatever the ping callable returned, or None when no ping went
        out or it failed.
        """
        if not self.state.session_active:
            return None
        idle = self.state.idle_seconds()
        if idle is None or idle <= self.threshold:
            return None
        logger.debug("session idle %.1fs, sending keep-alive", idle)
        try:
            return self._ping()
        except LockUnavailable as exc:
            logger.warning("keep-alive skipped, retrying next tick: %s", exc)
        except CapitalError as exc:
            logger.warning("keep-alive ping failed: %s", exc)
        return None

    def _run(self) -> None:
        logger.info("keep-alive started threshold=%.0fs tick=%.2fs", self.threshold, self.tick)
        while not self._stop.wait(self.tick):
            if not self.state.session_active:
                break
            self.check_once()
        logger.info("keep-alive stopped")
