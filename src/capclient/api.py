"""Synchronous client for the Capital.com REST API.

Limits enforced by the service:
  * at most one request per 100 ms, otherwise orders and positions get rejected
  * at most one session creation per second
  * sessions expire after 10 minutes without a request

Every call goes through one lock shared with the keep-alive thread, so a
background ping and a foreground call never interleave.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Callable, Optional, Sequence

import requests

from capclient import endpoints, models
from capclient.config import Config
from capclient.credentials import Credentials
from capclient.dispatcher import RequestDispatcher
from capclient.endpoints import Operation
from capclient.enums import BASE_URLS, Resolution, SessionType
from capclient.errors import CurrentAccountNotFound, NotDifferentAccountId
from capclient.http_client import Clock, RateGate, build_session
from capclient.keeper import KEEPALIVE_RATIO, SESSION_TIMEOUT_SECONDS, TICK_SECONDS, SessionKeeper
from capclient.state import ClientState

logger = logging.getLogger(__name__)


class CapitalAPI:
    def __init__(
        self,
        credentials: Credentials,
        session_type: SessionType = SessionType.DEMO,
        http: Optional[requests.Session] = None,
        request_timeout: Optional[float] = None,
        session_timeout: float = SESSION_TIMEOUT_SECONDS,
        keepalive_ratio: float = KEEPALIVE_RATIO,
        keepalive_tick: float = TICK_SECONDS,
        lock_timeout: Optional[float] = 60.0,
        clock: Clock = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._credentials = credentials
        self._state = ClientState(lock_timeout=lock_timeout, clock=clock)
        self._gate = RateGate(clock=clock, sleep=sleep)
        self._dispatcher = RequestDispatcher(
            self._state,
            http if http is not None else build_session(0),
            BASE_URLS[session_type],
            credentials.api_key,
            timeout=request_timeout,
            gate=self._gate,
        )
        self._keeper = SessionKeeper(
            self._state,
            self._keep_alive,
            session_timeout=session_timeout,
            ratio=keepalive_ratio,
            tick=keepalive_tick,
        )

    @classmethod
    def from_config(cls, cfg: Config, http: Optional[requests.Session] = None) -> "CapitalAPI":
        credentials = Credentials(
            identifier=cfg.api.identifier,
            password=cfg.api.password,
            api_key=cfg.api.api_key,
        )
        return cls(
            credentials,
            session_type=cfg.api.environment,
            http=http if http is not None else build_session(cfg.api.retry_count),
            request_timeout=cfg.api.request_timeout_seconds,
            session_timeout=cfg.session.timeout_seconds,
            keepalive_ratio=cfg.session.keepalive_ratio,
            keepalive_tick=cfg.session.keepalive_tick_seconds,
            lock_timeout=cfg.session.lock_timeout_seconds,
        )

    @property
    def current_account_id(self) -> str:
        return self._state.current_account_id

    @property
    def is_logged_in(self) -> bool:
        return self._state.session_active

    @property
    def keeper(self) -> SessionKeeper:
        return self._keeper

    def _call(self, operation: Operation) -> Any:
        with self._state.locked():
            _, body = self._dispatcher.execute(operation)
        return body

    def _keep_alive(self) -> Optional[models.PingResponse]:
        with self._state.locked():
            if not self._state.session_active:
                return None
            idle = self._state.idle_seconds()
            if idle is not None and idle <= self._keeper.threshold:
                return None
            _, body = self._dispatcher.execute(endpoints.ping())
        logger.debug("keep-alive ping status=%s", body.status)
        return body

    # Session

    def get_server_time(self) -> models.ServerTime:
        return self._call(endpoints.server_time())

    def ping(self) -> models.PingResponse:
        return self._call(endpoints.ping())

    def get_encryption_key(self) -> models.EncryptionKey:
        return self._call(endpoints.encryption_key())

    def open_session(self) -> models.CreateSessionResponse:
        with self._state.locked():
            _, body = self._dispatcher.execute(endpoints.create_session(self._credentials))
            self._state.current_account_id = body.current_account_id
            self._state.mark_active()
        logger.info("session opened account=%s", body.current_account_id)
        self._keeper.start()
        return body

    def get_session_details(self) -> models.SessionDetails:
        return self._call(endpoints.session_details())

    def close_session(self) -> models.LogoutResponse:
        self._state.mark_inactive()
        try:
            body = self._call(endpoints.logout())
        finally:
            self._keeper.stop()
        logger.info("session closed status=%s", body.status)
        return body

    # Accounts

    def get_all_accounts(self) -> models.AllAccountsResponse:
        return self._call(endpoints.all_accounts())

    def get_balance(self) -> models.BalanceInfo:
        with self._state.locked():
            _, body = self._dispatcher.execute(endpoints.all_accounts())
            account_id = self._state.current_account_id
        for account in body.accounts:
            if account.account_id == account_id:
                return account.balance
        raise CurrentAccountNotFound(account_id)

    def switch_account(self, account_id: str) -> models.SwitchAccountResponse:
        with self._state.locked():
            if account_id == self._state.current_account_id:
                raise NotDifferentAccountId(account_id)
            _, body = self._dispatcher.execute(endpoints.switch_account(account_id))
            self._state.current_account_id = account_id
        logger.info("switched to account=%s", account_id)
        return body

    # Markets

    def search_market(self, search_term: str, epics: Sequence[str] = ()) -> models.MarketSearchResponse:
        return self._call(endpoints.search_markets(search_term, epics))

    def get_market_data(self, epic: str) -> models.SingleMarketResponse:
        return self._call(endpoints.market(epic))

    def get_historical_prices(
        self,
        epic: str,
        resolution: Resolution,
        start: datetime,
        end: datetime,
        max_points: Optional[int] = None,
    ) -> models.HistoricalPrices:
        """``max_points`` defaults to the server's 10 and may be at most 1000."""
        return self._call(endpoints.historical_prices(epic, resolution, start, end, max_points))

    # Positions

    def get_all_positions(self) -> models.AllPositionsResponse:
        return self._call(endpoints.all_positions())

    def open_position(self, body: models.CreatePositionBody) -> models.OrderConfirmation:
        """Create a position and return the confirmation of the resulting deal."""
        with self._state.locked():
            _, reference = self._dispatcher.execute(endpoints.create_position(body))
            confirm = endpoints.order_confirmation(reference.deal_reference)
            self._gate.wait(self._state.last_request_at, confirm.min_interval_ms)
            _, confirmation = self._dispatcher.execute(confirm)
        logger.info(
            "position %s %s deal_id=%s status=%s",
            confirmation.direction,
            confirmation.epic,
            confirmation.deal_id,
            confirmation.deal_status,
        )
        return confirmation

    def position_data(self, deal_id: str) -> models.Position:
        return self._call(endpoints.position(deal_id))

    def update_position(self, deal_id: str, body: models.PositionUpdateBody) -> models.DealReference:
        return self._call(endpoints.update_position(deal_id, body))

    def close_position(self, deal_id: str) -> models.DealReference:
        return self._call(endpoints.close_position(deal_id))
