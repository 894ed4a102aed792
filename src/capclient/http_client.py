"""HTTP session factory and the fail-fast gate for outbound request spacing."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from capclient.errors import RequestingTooFast

Clock = Callable[[], float]

REQUEST_INTERVAL_MS = 100
SESSION_INTERVAL_MS = 1000


@dataclass
class RateGate:
    """Rejects a request fired sooner than ``min_interval_ms`` after the last one.

    ``check_allowed`` fails fast and records nothing; the caller stores the
    timestamp once the request has actually been exchanged. ``wait`` is only
    for the second leg of a multi-step flow the client itself started.
    """

    clock: Clock = field(default=time.monotonic)
    sleep: Callable[[float], None] = field(default=time.sleep)

    def check_allowed(self, last_request_at: Optional[float], min_interval_ms: int) -> None:
        if last_request_at is None:
            return
        elapsed = self.clock() - last_request_at
        min_interval = min_interval_ms / 1000.0
        if elapsed < min_interval:
            raise RequestingTooFast(
                timedelta(seconds=max(elapsed, 0.0)),
                timedelta(milliseconds=min_interval_ms),
            )

    def wait(self, last_request_at: Optional[float], min_interval_ms: int) -> None:
        """Sleep until a request may follow ``last_request_at``."""
        if last_request_at is None:
            return
        remaining = min_interval_ms / 1000.0 - (self.clock() - last_request_at)
        if remaining > 0:
            self.sleep(remaining)


def build_session(retry_count: int) -> requests.Session:
    """Build the shared HTTP session. Only idempotent reads are ever retried."""
    retry = Retry(
        total=retry_count,
        backoff_factor=0.5,
        status_forcelist=[502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session = requests.Session()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session
