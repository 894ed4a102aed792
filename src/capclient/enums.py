from __future__ import annotations

from enum import Enum
from typing import Type, TypeVar

E = TypeVar("E", bound="WireEnum")


class WireEnum(str, Enum):
    """Enum whose values are the strings the API sends and expects."""

    @classmethod
    def from_wire(cls: Type[E], value: str) -> E:
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"unknown {cls.__name__} value {value!r}") from None

    def __str__(self) -> str:
        return self.value


class SessionType(WireEnum):
    LIVE = "live"
    DEMO = "demo"


class Direction(WireEnum):
    BUY = "BUY"
    SELL = "SELL"


class Resolution(WireEnum):
    MINUTE = "MINUTE"
    MINUTE_5 = "MINUTE_5"
    MINUTE_15 = "MINUTE_15"
    MINUTE_30 = "MINUTE_30"
    HOUR = "HOUR"
    HOUR_4 = "HOUR_4"
    DAY = "DAY"
    WEEK = "WEEK"


class MarketStatus(WireEnum):
    TRADEABLE = "TRADEABLE"
    CLOSED = "CLOSED"


class Status(WireEnum):
    OPEN = "OPEN"
    OPENED = "OPENED"
    PENDING = "PENDING"
    CLOSED = "CLOSED"
    DELETED = "DELETED"


class DealStatus(WireEnum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class Unit(WireEnum):
    PERCENTAGE = "PERCENTAGE"
    POINTS = "POINTS"


BASE_URLS = {
    SessionType.LIVE: "https://api-capital.backend-capital.com",
    SessionType.DEMO: "https://demo-api-capital.backend-capital.com",
}
