"""Operation descriptors for every REST endpoint the client calls.

An ``Operation`` says what to send (method, path, query, body), which headers
it needs, how closely it may follow the previous request, and which type the
200 response body decodes into. Builders validate their arguments so that a
bad call fails before anything touches the network.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

from capclient import models
from capclient.credentials import Credentials
from capclient.enums import Resolution
from capclient.errors import InvalidParameter, TooManyParameters
from capclient.http_client import REQUEST_INTERVAL_MS, SESSION_INTERVAL_MS
from capclient.util import format_api_time, to_utc

MAX_SEARCH_EPICS = 50
MAX_PRICE_POINTS = 1000

Decoder = Callable[[Dict[str, Any]], Any]


@dataclass(frozen=True)
class Operation:
    name: str
    method: str
    path: str
    decode: Decoder
    requires_auth: bool = True
    uses_api_key: bool = False
    refreshes_session: bool = False
    min_interval_ms: int = REQUEST_INTERVAL_MS
    params: Tuple[Tuple[str, str], ...] = ()
    body: Optional[Dict[str, Any]] = None


def _segment(value: str) -> str:
    if not value:
        raise InvalidParameter("path identifier must not be empty")
    return quote(value, safe="")


def server_time() -> Operation:
    return Operation("server_time", "GET", "/api/v1/time", models.ServerTime.from_dict, requires_auth=False)


def ping() -> Operation:
    return Operation("ping", "GET", "/api/v1/ping", models.PingResponse.from_dict)


def encryption_key() -> Operation:
    return Operation(
        "encryption_key",
        "GET",
        "/api/v1/session/encryptionKey",
        models.EncryptionKey.from_dict,
        requires_auth=False,
        uses_api_key=True,
    )


def create_session(credentials: Credentials) -> Operation:
    body = models.CreateSessionBody(credentials.identifier, credentials.password)
    return Operation(
        "create_session",
        "POST",
        "/api/v1/session",
        models.CreateSessionResponse.from_dict,
        requires_auth=False,
        uses_api_key=True,
        refreshes_session=True,
        min_interval_ms=SESSION_INTERVAL_MS,
        body=body.to_dict(),
    )


def session_details() -> Operation:
    return Operation("session_details", "GET", "/api/v1/session", models.SessionDetails.from_dict)


def switch_account(account_id: str) -> Operation:
    if not account_id:
        raise InvalidParameter("account id must not be empty")
    return Operation(
        "switch_account",
        "PUT",
        "/api/v1/session",
        models.SwitchAccountResponse.from_dict,
        body=models.SwitchActiveAccountBody(account_id).to_dict(),
    )


def logout() -> Operation:
    return Operation("logout", "DELETE", "/api/v1/session", models.LogoutResponse.from_dict)


def all_accounts() -> Operation:
    return Operation("all_accounts", "GET", "/api/v1/accounts", models.AllAccountsResponse.from_dict)


def order_confirmation(deal_reference: str) -> Operation:
    return Operation(
        "order_confirmation",
        "GET",
        f"/api/v1/confirms/{_segment(deal_reference)}",
        models.OrderConfirmation.from_dict,
    )


def all_positions() -> Operation:
    return Operation("all_positions", "GET", "/api/v1/positions", models.AllPositionsResponse.from_dict)


def create_position(body: models.CreatePositionBody) -> Operation:
    return Operation(
        "create_position",
        "POST",
        "/api/v1/positions",
        models.DealReference.from_dict,
        body=body.to_dict(),
    )


def position(deal_id: str) -> Operation:
    return Operation(
        "position", "GET", f"/api/v1/positions/{_segment(deal_id)}", models.Position.from_dict
    )


def update_position(deal_id: str, body: models.PositionUpdateBody) -> Operation:
    return Operation(
        "update_position",
        "PUT",
        f"/api/v1/positions/{_segment(deal_id)}",
        models.DealReference.from_dict,
        body=body.to_dict(),
    )


def close_position(deal_id: str) -> Operation:
    return Operation(
        "close_position",
        "DELETE",
        f"/api/v1/positions/{_segment(deal_id)}",
        models.DealReference.from_dict,
    )


def search_markets(
    search_term: str, epics: Sequence[str] = (), max_epics: int = MAX_SEARCH_EPICS
) -> Operation:
    if isinstance(epics, str):
        raise InvalidParameter("epics must be a sequence of epic names, not a string")
    if len(epics) > max_epics:
        raise TooManyParameters(len(epics), max_epics)
    params: List[Tuple[str, str]] = [("searchTerm", search_term)]
    if epics:
        params.append(("epics", ",".join(epics)))
    return Operation(
        "search_markets",
        "GET",
        "/api/v1/markets",
        models.MarketSearchResponse.from_dict,
        params=tuple(params),
    )


def market(epic: str) -> Operation:
    return Operation(
        "market", "GET", f"/api/v1/markets/{_segment(epic)}", models.SingleMarketResponse.from_dict
    )


def historical_prices(
    epic: str,
    resolution: Resolution,
    start: datetime,
    end: datetime,
    max_points: Optional[int] = None,
) -> Operation:
    if max_points is not None and not 1 <= max_points <= MAX_PRICE_POINTS:
        raise InvalidParameter(f"max must be between 1 and {MAX_PRICE_POINTS}, got {max_points}")
    if to_utc(start) > to_utc(end):
        raise InvalidParameter("from must not be after to")
    params: List[Tuple[str, str]] = [
        ("resolution", Resolution(resolution).value),
        ("from", format_api_time(start)),
        ("to", format_api_time(end)),
    ]
    if max_points is not None:
        params.append(("max", str(max_points)))
    return Operation(
        "historical_prices",
        "GET",
        f"/api/v1/prices/{_segment(epic)}",
        models.HistoricalPrices.from_dict,
        params=tuple(params),
    )
