from __future__ import annotations

import json
from collections import deque
from types import SimpleNamespace
from typing import Any, Dict, Optional

import pytest
from requests.structures import CaseInsensitiveDict

from capclient.api import CapitalAPI
from capclient.credentials import Credentials


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        text: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(body if body is not None else {})
        self.headers = CaseInsensitiveDict(headers or {})


class FakeSession:
    """Stands in for requests.Session; records calls and replays queued responses."""

    def __init__(self, clock: Optional[FakeClock] = None, latency: float = 0.0) -> None:
        self.calls = []
        self.responses = deque()
        self.clock = clock
        self.latency = latency

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def request(self, method, url, params=None, data=None, headers=None, timeout=None):
        self.calls.append(
            SimpleNamespace(
                method=method,
                url=url,
                params=params,
                json=json.loads(data) if data else None,
                headers=dict(headers or {}),
                timeout=timeout,
            )
        )
        if self.clock is not None:
            self.clock.advance(self.latency)
        item = self.responses.popleft()
        if isinstance(item, Exception):
            raise item
        return item


def balance(amount: float = 1000.0) -> Dict[str, Any]:
    return {"balance": amount, "deposit": amount, "profitLoss": 0.0, "available": amount}


def account(account_id: str, name: str = "main", amount: float = 1000.0) -> Dict[str, Any]:
    return {
        "accountId": account_id,
        "accountName": name,
        "status": "ENABLED",
        "accountType": "CFD",
        "preferred": True,
        "balance": balance(amount),
        "currency": "USD",
        "symbol": "$",
    }


def session_payload(account_id: str = "ACC-1") -> Dict[str, Any]:
    return {
        "accountType": "CFD",
        "accountInfo": balance(),
        "currencyIsoCode": "USD",
        "currencySymbol": "$",
        "currentAccountId": account_id,
        "streamingHost": "wss://api-streaming-capital.backend-capital.com/",
        "accounts": [account(account_id)],
        "clientId": "12345",
        "timezoneOffset": 1,
        "hasActiveDemoAccounts": True,
        "hasActiveLiveAccounts": False,
        "trailingStopsEnabled": False,
    }


def login_response(account_id: str = "ACC-1", security_token: str = "sec-1", cst: str = "cst-1"):
    return FakeResponse(
        body=session_payload(account_id),
        headers={"X-SECURITY-TOKEN": security_token, "CST": cst},
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def http(clock):
    return FakeSession(clock)


@pytest.fixture
def credentials():
    return Credentials(identifier="trader@example.com", password="hunter2", api_key="key-123")


@pytest.fixture
def api(credentials, http, clock):
    # A tick this long keeps the keep-alive thread parked; tests drive check_once().
    client = CapitalAPI(
        credentials,
        http=http,
        clock=clock,
        sleep=clock.advance,
        keepalive_tick=3600.0,
    )
    yield client
    client.keeper.stop(timeout=1.0)


@pytest.fixture
def logged_in_api(api, http, clock):
    http.queue(login_response())
    api.open_session()
    clock.advance(1.0)
    return api
