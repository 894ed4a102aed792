import pytest

from capclient.enums import BASE_URLS, Direction, Resolution, SessionType
from capclient.models import (
    CreatePositionBodyBuilder,
    HistoricalPrices,
    PositionUpdateBody,
    SingleMarketResponse,
)


def test_guaranteed_stop_clears_trailing_stop():
    body = (
        CreatePositionBodyBuilder(Direction.BUY, "GOLD", 1.0)
        .trailing_stop(True)
        .guaranteed_stop(True)
        .build()
    )
    assert body.guaranteed_stop is True
    assert body.trailing_stop is None


def test_disabling_trailing_stop_drops_distance():
    body = (
        CreatePositionBodyBuilder(Direction.BUY, "GOLD", 1.0)
        .guaranteed_stop(True)
        .stop_distance(5.0)
        .trailing_stop(False)
        .build()
    )
    assert body.stop_distance is None
    assert body.guaranteed_stop is None
    assert body.to_dict()["trailingStop"] is False


def test_position_update_omits_unset_fields():
    assert PositionUpdateBody(profit_level=1.5).to_dict() == {"profitLevel": 1.5}


def test_enums_round_trip_wire_values():
    assert Resolution.from_wire("HOUR_4") is Resolution.HOUR_4
    assert str(Direction.SELL) == "SELL"
    with pytest.raises(ValueError):
        Resolution.from_wire("HOUR_2")


def test_every_session_type_has_a_base_url():
    assert set(BASE_URLS) == set(SessionType)


def test_single_market_response_decodes():
    data = {
        "instrument": {"epic": "TSLA", "name": "Tesla", "currency": "USD", "lotSize": 1},
        "dealingRules": {
            "minDealSize": {"unit": "POINTS", "value": 1},
            "maxDealSize": {"unit": "POINTS", "value": 1000},
            "minStopOrProfitDistance": {"unit": "PERCENTAGE", "value": 0.1},
        },
        "snapshot": {"marketStatus": "TRADEABLE", "bid": 180.1, "offer": 180.3},
    }
    market = SingleMarketResponse.from_dict(data)
    assert market.instrument.name == "Tesla"
    assert market.dealing_rules.min_deal_size.value == 1.0
    assert market.dealing_rules.min_step_distance is None
    assert market.snapshot.offer == 180.3


def test_historical_prices_decode_requires_prices_list():
    with pytest.raises(TypeError):
        HistoricalPrices.from_dict({"prices": {}, "instrumentType": "SHARES"})
