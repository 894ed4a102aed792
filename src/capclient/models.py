"""Request bodies and decoded response payloads of the REST API.

Response classes are built with ``from_dict`` from the decoded JSON object;
a missing required key or a value of the wrong shape raises ``KeyError``,
``TypeError`` or ``ValueError``, which the dispatcher reports as ``JsonError``.
Request bodies expose ``to_dict`` with the camelCase keys the API expects and
leave out fields that are unset.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from capclient.enums import DealStatus, Direction, MarketStatus, Unit


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


def _opt_float(data: Dict[str, Any], key: str) -> Optional[float]:
    value = data.get(key)
    if value is None:
        return None
    return float(value)


def _opt_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    return str(value)


def _items(data: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    items = data[key]
    if not isinstance(items, list):
        raise TypeError(f"{key} is not a list")
    return items


# Request bodies


@dataclass(frozen=True)
class CreateSessionBody:
    identifier: str
    password: str

    def to_dict(self) -> Dict[str, Any]:
        return {"identifier": self.identifier, "password": self.password}

    def __repr__(self) -> str:
        return f"CreateSessionBody(identifier={self.identifier!r}, password='***')"


@dataclass
class CreatePositionBody:
    direction: Direction
    epic: str
    size: float
    guaranteed_stop: Optional[bool] = None
    trailing_stop: Optional[bool] = None
    stop_level: Optional[float] = None
    stop_distance: Optional[float] = None
    stop_amount: Optional[float] = None
    profit_level: Optional[float] = None
    profit_distance: Optional[float] = None
    profit_amount: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {
                "direction": self.direction.value,
                "epic": self.epic,
                "size": self.size,
                "guaranteedStop": self.guaranteed_stop,
                "trailingStop": self.trailing_stop,
                "stopLevel": self.stop_level,
                "stopDistance": self.stop_distance,
                "stopAmount": self.stop_amount,
                "profitLevel": self.profit_level,
                "profitDistance": self.profit_distance,
                "profitAmount": self.profit_amount,
            }
        )


class CreatePositionBodyBuilder:
    """Fluent builder that keeps the stop options mutually consistent."""

    def __init__(self, direction: Direction, epic: str, size: float) -> None:
        self._body = CreatePositionBody(direction=direction, epic=epic, size=size)

    def guaranteed_stop(self, enabled: bool) -> "CreatePositionBodyBuilder":
        # Needs a stop level, distance or amount. Not allowed in hedging mode.
        self._body.guaranteed_stop = enabled
        self._body.trailing_stop = None
        return self

    def trailing_stop(self, enabled: bool) -> "CreatePositionBodyBuilder":
        # Needs stop_distance.
        if not enabled:
            self._body.stop_distance = None
        self._body.trailing_stop = enabled
        self._body.guaranteed_stop = None
        return self

    def stop_level(self, value: float) -> "CreatePositionBodyBuilder":
        self._body.stop_level = value
        return self

    def stop_distance(self, value: float) -> "CreatePositionBodyBuilder":
        self._body.stop_distance = value
        return self

    def stop_amount(self, value: float) -> "CreatePositionBodyBuilder":
        self._body.stop_amount = value
        return self

    def profit_level(self, value: float) -> "CreatePositionBodyBuilder":
        self._body.profit_level = value
        return self

    def profit_distance(self, value: float) -> "CreatePositionBodyBuilder":
        self._body.profit_distance = value
        return self

    def profit_amount(self, value: float) -> "CreatePositionBodyBuilder":
        self._body.profit_amount = value
        return self

    def build(self) -> CreatePositionBody:
        return self._body


@dataclass
class PositionUpdateBody:
    guaranteed_stop: Optional[bool] = None
    trailing_stop: Optional[bool] = None
    stop_level: Optional[float] = None
    stop_distance: Optional[float] = None
    stop_amount: Optional[float] = None
    profit_level: Optional[float] = None
    profit_distance: Optional[float] = None
    profit_amount: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {
                "guaranteedStop": self.guaranteed_stop,
                "trailingStop": self.trailing_stop,
                "stopLevel": self.stop_level,
                "stopDistance": self.stop_distance,
                "stopAmount": self.stop_amount,
                "profitLevel": self.profit_level,
                "profitDistance": self.profit_distance,
                "profitAmount": self.profit_amount,
            }
        )


@dataclass(frozen=True)
class SwitchActiveAccountBody:
    account_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"accountId": self.account_id}


# Responses


@dataclass
class ApiError:
    error_code: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApiError":
        return cls(error_code=str(data["errorCode"]))


@dataclass
class ServerTime:
    server_time: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerTime":
        return cls(server_time=int(data["serverTime"]))


@dataclass
class PingResponse:
    status: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PingResponse":
        return cls(status=str(data["status"]))


@dataclass
class EncryptionKey:
    encryption_key: str
    time_stamp: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EncryptionKey":
        return cls(encryption_key=str(data["encryptionKey"]), time_stamp=int(data["timeStamp"]))


@dataclass
class BalanceInfo:
    balance: float
    deposit: float
    profit_loss: float
    available: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BalanceInfo":
        return cls(
            balance=float(data["balance"]),
            deposit=float(data["deposit"]),
            profit_loss=float(data["profitLoss"]),
            available=float(data["available"]),
        )


@dataclass
class Account:
    account_id: str
    account_name: str
    preferred: bool
    account_type: str
    currency: str
    balance: BalanceInfo
    symbol: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        return cls(
            account_id=str(data["accountId"]),
            account_name=str(data["accountName"]),
            preferred=bool(data.get("preferred", False)),
            account_type=str(data["accountType"]),
            currency=str(data["currency"]),
            balance=BalanceInfo.from_dict(data["balance"]),
            symbol=_opt_str(data, "symbol"),
            status=_opt_str(data, "status"),
        )


@dataclass
class CreateSessionResponse:
    account_type: str
    account_info: BalanceInfo
    currency_iso_code: str
    current_account_id: str
    client_id: str
    accounts: List[Account] = field(default_factory=list)
    currency_symbol: Optional[str] = None
    streaming_host: Optional[str] = None
    timezone_offset: int = 0
    has_active_demo_accounts: bool = False
    has_active_live_accounts: bool = False
    trailing_stops_enabled: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CreateSessionResponse":
        return cls(
            account_type=str(data["accountType"]),
            account_info=BalanceInfo.from_dict(data["accountInfo"]),
            currency_iso_code=str(data["currencyIsoCode"]),
            current_account_id=str(data["currentAccountId"]),
            client_id=str(data["clientId"]),
            accounts=[Account.from_dict(item) for item in _items(data, "accounts")],
            currency_symbol=_opt_str(data, "currencySymbol"),
            streaming_host=_opt_str(data, "streamingHost"),
            timezone_offset=int(data.get("timezoneOffset") or 0),
            has_active_demo_accounts=bool(data.get("hasActiveDemoAccounts", False)),
            has_active_live_accounts=bool(data.get("hasActiveLiveAccounts", False)),
            trailing_stops_enabled=bool(data.get("trailingStopsEnabled", False)),
        )


@dataclass
class SessionDetails:
    client_id: str
    account_id: str
    timezone_offset: int
    locale: str
    currency: str
    stream_endpoint: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionDetails":
        return cls(
            client_id=str(data["clientId"]),
            account_id=str(data["accountId"]),
            timezone_offset=int(data.get("timezoneOffset") or 0),
            locale=str(data["locale"]),
            currency=str(data["currency"]),
            stream_endpoint=_opt_str(data, "streamEndpoint"),
        )


@dataclass
class SwitchAccountResponse:
    trailing_stops_enabled: bool
    dealing_enabled: bool
    has_active_demo_accounts: bool
    has_active_live_accounts: bool

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SwitchAccountResponse":
        return cls(
            trailing_stops_enabled=bool(data["trailingStopsEnabled"]),
            dealing_enabled=bool(data["dealingEnabled"]),
            has_active_demo_accounts=bool(data["hasActiveDemoAccounts"]),
            has_active_live_accounts=bool(data["hasActiveLiveAccounts"]),
        )


@dataclass
class LogoutResponse:
    status: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogoutResponse":
        return cls(status=str(data["status"]))


@dataclass
class AllAccountsResponse:
    accounts: List[Account]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AllAccountsResponse":
        return cls(accounts=[Account.from_dict(item) for item in _items(data, "accounts")])


@dataclass
class AffectedDeal:
    deal_id: str
    status: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AffectedDeal":
        return cls(deal_id=str(data["dealId"]), status=str(data["status"]))


@dataclass
class OrderConfirmation:
    date: str
    status: str
    deal_status: DealStatus
    epic: str
    deal_reference: str
    deal_id: str
    direction: Direction
    level: Optional[float] = None
    size: Optional[float] = None
    guaranteed_stop: bool = False
    trailing_stop: bool = False
    affected_deals: List[AffectedDeal] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderConfirmation":
        return cls(
            date=str(data["date"]),
            status=str(data["status"]),
            deal_status=DealStatus.from_wire(data["dealStatus"]),
            epic=str(data["epic"]),
            deal_reference=str(data["dealReference"]),
            deal_id=str(data["dealId"]),
            direction=Direction.from_wire(data["direction"]),
            level=_opt_float(data, "level"),
            size=_opt_float(data, "size"),
            guaranteed_stop=bool(data.get("guaranteedStop", False)),
            trailing_stop=bool(data.get("trailingStop", False)),
            affected_deals=[AffectedDeal.from_dict(item) for item in data.get("affectedDeals") or []],
        )


@dataclass
class DealReference:
    deal_reference: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DealReference":
        return cls(deal_reference=str(data["dealReference"]))


@dataclass
class Market:
    epic: str
    instrument_name: str
    instrument_type: str
    market_status: MarketStatus
    bid: Optional[float] = None
    offer: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    net_change: Optional[float] = None
    percentage_change: Optional[float] = None
    symbol: Optional[str] = None
    expiry: Optional[str] = None
    lot_size: Optional[float] = None
    update_time: Optional[str] = None
    update_time_utc: Optional[str] = None
    delay_time: Optional[float] = None
    streaming_prices_available: bool = False
    scaling_factor: Optional[float] = None
    market_modes: List[str] = field(default_factory=list)
    pip_position: Optional[int] = None
    tick_size: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Market":
        pip_position = data.get("pipPosition")
        return cls(
            epic=str(data["epic"]),
            instrument_name=str(data["instrumentName"]),
            instrument_type=str(data["instrumentType"]),
            market_status=MarketStatus.from_wire(data["marketStatus"]),
            bid=_opt_float(data, "bid"),
            offer=_opt_float(data, "offer"),
            high=_opt_float(data, "high"),
            low=_opt_float(data, "low"),
            net_change=_opt_float(data, "netChange"),
            percentage_change=_opt_float(data, "percentageChange"),
            symbol=_opt_str(data, "symbol"),
            expiry=_opt_str(data, "expiry"),
            lot_size=_opt_float(data, "lotSize"),
            update_time=_opt_str(data, "updateTime"),
            update_time_utc=_opt_str(data, "updateTimeUTC"),
            delay_time=_opt_float(data, "delayTime"),
            streaming_prices_available=bool(data.get("streamingPricesAvailable", False)),
            scaling_factor=_opt_float(data, "scalingFactor"),
            market_modes=[str(x) for x in data.get("marketModes") or []],
            pip_position=int(pip_position) if pip_position is not None else None,
            tick_size=_opt_float(data, "tickSize"),
        )


@dataclass
class PositionData:
    deal_id: str
    deal_reference: str
    direction: Direction
    size: float
    level: float
    currency: str
    created_date: Optional[str] = None
    created_date_utc: Optional[str] = None
    contract_size: Optional[float] = None
    leverage: Optional[float] = None
    upl: Optional[float] = None
    guaranteed_stop: bool = False
    working_order_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PositionData":
        return cls(
            deal_id=str(data["dealId"]),
            deal_reference=str(data["dealReference"]),
            direction=Direction.from_wire(data["direction"]),
            size=float(data["size"]),
            level=float(data["level"]),
            currency=str(data["currency"]),
            created_date=_opt_str(data, "createdDate"),
            created_date_utc=_opt_str(data, "createdDateUTC"),
            contract_size=_opt_float(data, "contractSize"),
            leverage=_opt_float(data, "leverage"),
            upl=_opt_float(data, "upl"),
            guaranteed_stop=bool(data.get("guaranteedStop", False)),
            working_order_id=_opt_str(data, "workingOrderId"),
        )


@dataclass
class Position:
    position: PositionData
    market: Market

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Position":
        return cls(
            position=PositionData.from_dict(data["position"]),
            market=Market.from_dict(data["market"]),
        )


@dataclass
class AllPositionsResponse:
    positions: List[Position]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AllPositionsResponse":
        return cls(positions=[Position.from_dict(item) for item in _items(data, "positions")])


@dataclass
class MarketSearchResponse:
    markets: List[Market]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MarketSearchResponse":
        return cls(markets=[Market.from_dict(item) for item in _items(data, "markets")])


@dataclass
class UnitValue:
    unit: Unit
    value: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnitValue":
        return cls(unit=Unit.from_wire(data["unit"]), value=float(data["value"]))


@dataclass
class DealingRules:
    min_deal_size: UnitValue
    max_deal_size: UnitValue
    min_step_distance: Optional[UnitValue] = None
    min_size_increment: Optional[UnitValue] = None
    min_guaranteed_stop_distance: Optional[UnitValue] = None
    min_stop_or_profit_distance: Optional[UnitValue] = None
    max_stop_or_profit_distance: Optional[UnitValue] = None
    market_order_preference: Optional[str] = None
    trailing_stops_preference: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DealingRules":
        def unit_value(key: str) -> Optional[UnitValue]:
            raw = data.get(key)
            return UnitValue.from_dict(raw) if raw is not None else None

        return cls(
            min_deal_size=UnitValue.from_dict(data["minDealSize"]),
            max_deal_size=UnitValue.from_dict(data["maxDealSize"]),
            min_step_distance=unit_value("minStepDistance"),
            min_size_increment=unit_value("minSizeIncrement"),
            min_guaranteed_stop_distance=unit_value("minGuaranteedStopDistance"),
            min_stop_or_profit_distance=unit_value("minStopOrProfitDistance"),
            max_stop_or_profit_distance=unit_value("maxStopOrProfitDistance"),
            market_order_preference=_opt_str(data, "marketOrderPreference"),
            trailing_stops_preference=_opt_str(data, "trailingStopsPreference"),
        )


@dataclass
class Instrument:
    epic: str
    name: str
    currency: str
    type: Optional[str] = None
    symbol: Optional[str] = None
    expiry: Optional[str] = None
    lot_size: Optional[float] = None
    guaranteed_stop_allowed: bool = False
    streaming_prices_available: bool = False
    margin_factor: Optional[float] = None
    margin_factor_unit: Optional[str] = None
    opening_hours: Dict[str, Any] = field(default_factory=dict)
    overnight_fee: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Instrument":
        return cls(
            epic=str(data["epic"]),
            name=str(data["name"]),
            currency=str(data["currency"]),
            type=_opt_str(data, "type"),
            symbol=_opt_str(data, "symbol"),
            expiry=_opt_str(data, "expiry"),
            lot_size=_opt_float(data, "lotSize"),
            guaranteed_stop_allowed=bool(data.get("guaranteedStopAllowed", False)),
            streaming_prices_available=bool(data.get("streamingPricesAvailable", False)),
            margin_factor=_opt_float(data, "marginFactor"),
            margin_factor_unit=_opt_str(data, "marginFactorUnit"),
            opening_hours=dict(data.get("openingHours") or {}),
            overnight_fee=dict(data.get("overnightFee") or {}),
        )


@dataclass
class Snapshot:
    market_status: MarketStatus
    bid: Optional[float] = None
    offer: Optional[float] = None
    update_time: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snapshot":
        return cls(
            market_status=MarketStatus.from_wire(data["marketStatus"]),
            bid=_opt_float(data, "bid"),
            offer=_opt_float(data, "offer"),
            update_time=_opt_str(data, "updateTime"),
        )


@dataclass
class SingleMarketResponse:
    instrument: Instrument
    dealing_rules: DealingRules
    snapshot: Snapshot

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SingleMarketResponse":
        return cls(
            instrument=Instrument.from_dict(data["instrument"]),
            dealing_rules=DealingRules.from_dict(data["dealingRules"]),
            snapshot=Snapshot.from_dict(data["snapshot"]),
        )


@dataclass
class Price:
    bid: float
    ask: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Price":
        return cls(bid=float(data["bid"]), ask=float(data["ask"]))


@dataclass
class PricePoint:
    snapshot_time: str
    snapshot_time_utc: str
    open_price: Price
    close_price: Price
    high_price: Price
    low_price: Price
    last_traded_volume: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PricePoint":
        return cls(
            snapshot_time=str(data["snapshotTime"]),
            snapshot_time_utc=str(data["snapshotTimeUTC"]),
            open_price=Price.from_dict(data["openPrice"]),
            close_price=Price.from_dict(data["closePrice"]),
            high_price=Price.from_dict(data["highPrice"]),
            low_price=Price.from_dict(data["lowPrice"]),
            last_traded_volume=float(data.get("lastTradedVolume") or 0),
        )


@dataclass
class HistoricalPrices:
    prices: List[PricePoint]
    instrument_type: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoricalPrices":
        return cls(
            prices=[PricePoint.from_dict(item) for item in _items(data, "prices")],
            instrument_type=str(data["instrumentType"]),
        )
