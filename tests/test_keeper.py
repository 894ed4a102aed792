import logging
import threading
import time

import pytest
import requests

from capclient.api import CapitalAPI
from capclient.errors import LockUnavailable, TransportError
from capclient.keeper import SessionKeeper
from capclient.state import ClientState
from conftest import FakeClock, FakeResponse, FakeSession, login_response

THRESHOLD = 540.0


def test_threshold_is_ninety_percent_of_timeout():
    keeper = SessionKeeper(ClientState(), lambda: None)
    assert keeper.threshold == THRESHOLD


def test_no_ping_after_logout_even_when_idle(logged_in_api, http, clock):
    http.queue(FakeResponse(body={"status": "SUCCESS"}))
    logged_in_api.close_session()
    calls_before = len(http.calls)
    clock.advance(THRESHOLD + 60)
    assert logged_in_api.keeper.check_once() is None
    assert len(http.calls) == calls_before


def test_no_ping_while_recently_active(logged_in_api, http, clock):
    calls_before = len(http.calls)
    clock.advance(THRESHOLD - 10)
    assert logged_in_api.keeper.check_once() is None
    assert len(http.calls) == calls_before


def test_ping_once_idle_crosses_threshold(logged_in_api, http, clock):
    http.queue(FakeResponse(body={"status": "OK"}))
    clock.advance(THRESHOLD + 1)
    assert logged_in_api.keeper.check_once().status == "OK"
    assert http.calls[-1].url.endswith("/api/v1/ping")
    # The ping refreshed the idle timer, so the next tick stays quiet.
    assert logged_in_api.keeper.check_once() is None


def test_ping_failure_is_logged_and_timestamp_kept(logged_in_api, http, clock, caplog):
    http.queue(requests.ConnectionError("down"), FakeResponse(body={"status": "OK"}))
    clock.advance(THRESHOLD + 1)
    last_before = logged_in_api._state.last_request_at

    with caplog.at_level(logging.WARNING, logger="capclient"):
        assert logged_in_api.keeper.check_once() is None
    assert "keep-alive ping failed" in caplog.text
    assert logged_in_api._state.last_request_at == last_before
    assert logged_in_api.is_logged_in

    clock.advance(1)
    assert logged_in_api.keeper.check_once() is not None
    assert logged_in_api._state.last_request_at == clock()


def test_lock_timeout_skips_the_tick(caplog):
    state = ClientState(clock=FakeClock())
    state.mark_active()
    state.last_request_at = state.clock() - THRESHOLD - 1

    def ping():
        raise LockUnavailable(0.1)

    keeper = SessionKeeper(state, ping)
    with caplog.at_level(logging.WARNING, logger="capclient"):
        assert keeper.check_once() is None
    assert "keep-alive skipped" in caplog.text


def test_thread_exits_when_session_goes_inactive():
    state = ClientState(clock=FakeClock())
    state.mark_active()
    keeper = SessionKeeper(state, lambda: None, tick=0.01)
    keeper.start()
    assert keeper.running
    state.mark_inactive()
    keeper._thread.join(timeout=2.0)
    assert not keeper.running


def test_thread_stops_on_request_and_pings_when_idle():
    clock = FakeClock()
    state = ClientState(clock=clock)
    state.mark_active()
    state.last_request_at = clock()
    pinged = threading.Event()
    keeper = SessionKeeper(state, pinged.set, tick=0.01)
    keeper.start()
    clock.advance(THRESHOLD + 1)
    assert pinged.wait(timeout=2.0)
    keeper.stop(timeout=2.0)
    assert not keeper.running


def test_thread_survives_lock_contention_and_pings_afterwards(caplog):
    clock = FakeClock()
    state = ClientState(lock_timeout=0.05, clock=clock)
    state.mark_active()
    state.last_request_at = clock() - THRESHOLD - 1
    pinged = threading.Event()

    def ping():
        with state.locked():
            pinged.set()
            return "pong"

    keeper = SessionKeeper(state, ping, tick=0.01)
    with caplog.at_level(logging.WARNING, logger="capclient"):
        with state.locked():
            keeper.start()
            time.sleep(0.3)
            assert keeper.running
            assert not pinged.is_set()
        assert pinged.wait(timeout=2.0)
    keeper.stop(timeout=2.0)
    assert "keep-alive skipped" in caplog.text
    assert state.session_active


class HeldSession(FakeSession):
    """FakeSession whose next request blocks until ``release`` is set."""

    def __init__(self, clock):
        super().__init__(clock)
        self.started = []
        self.entered = threading.Event()
        self.release = threading.Event()
        self._hold = False

    def hold_next(self):
        self._hold = True

    def request(self, method, url, **kwargs):
        self.started.append(url)
        if self._hold:
            self._hold = False
            self.entered.set()
            self.release.wait(timeout=5.0)
        return super().request(method, url, **kwargs)


@pytest.fixture
def held(credentials, clock):
    http = HeldSession(clock)
    client = CapitalAPI(credentials, http=http, clock=clock, sleep=clock.advance, keepalive_tick=3600.0)
    http.queue(login_response())
    client.open_session()
    clock.advance(THRESHOLD + 1)
    yield client, http
    http.release.set()
    client.keeper.stop(timeout=1.0)


def _run_alongside_foreground(client, http, foreground):
    errors = []
    results = []

    def call():
        try:
            foreground()
        except TransportError as exc:
            errors.append(exc)

    fg = threading.Thread(target=call)
    fg.start()
    assert http.entered.wait(timeout=2.0)
    started_before = list(http.started)

    bg = threading.Thread(target=lambda: results.append(client.keeper.check_once()))
    bg.start()
    bg.join(timeout=0.2)
    # The keep-alive is parked on the client lock, not on the network.
    assert bg.is_alive()
    assert http.started == started_before

    http.release.set()
    fg.join(timeout=2.0)
    bg.join(timeout=2.0)
    assert not fg.is_alive() and not bg.is_alive()
    return results, errors


def test_keep_alive_ping_waits_for_foreground_call(held):
    client, http = held
    http.queue(requests.ConnectionError("reset"), FakeResponse(body={"status": "OK"}))
    http.hold_next()

    results, errors = _run_alongside_foreground(client, http, client.get_all_positions)

    assert len(errors) == 1
    assert results[0].status == "OK"
    assert http.started[-2].endswith("/api/v1/positions")
    assert http.started[-1].endswith("/api/v1/ping")


def test_keep_alive_skips_ping_when_foreground_call_refreshed_session(held):
    client, http = held
    http.queue(FakeResponse(body={"positions": []}))
    http.hold_next()

    results, errors = _run_alongside_foreground(client, http, client.get_all_positions)

    assert errors == []
    assert results == [None]
    assert http.started[-1].endswith("/api/v1/positions")
