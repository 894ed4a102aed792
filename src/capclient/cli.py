from __future__ import annotations

import argparse
import dataclasses
import json
import sys
import time
from enum import Enum
from typing import Any, Callable, List, Optional

from capclient.api import CapitalAPI
from capclient.config import Config, load_config
from capclient.enums import Resolution
from capclient.errors import CapitalError, RequestingTooFast
from capclient.logging_setup import setup_logging
from capclient.util import parse_user_time


def _build_parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--config", default="capclient.yaml", help="Path to capclient.yaml")
    return parser


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"cannot serialize {type(value).__name__}")


def _print(result: Any) -> None:
    print(json.dumps(dataclasses.asdict(result), indent=2, default=_json_default))


def _load(args: argparse.Namespace) -> Config:
    cfg = load_config(args.config)
    setup_logging(cfg.logging.level)
    return cfg


def _paced(call: Callable[[], Any]) -> Any:
    # Back off once when the previous request was too recent.
    try:
        return call()
    except RequestingTooFast as exc:
        time.sleep((exc.min_interval - exc.elapsed).total_seconds())
        return call()


def _with_session(cfg: Config, action: Callable[[CapitalAPI], Any]) -> int:
    api = CapitalAPI.from_config(cfg)
    try:
        api.open_session()
    except CapitalError as exc:
        print(f"login failed: {exc}", file=sys.stderr)
        return 1
    try:
        _print(_paced(lambda: action(api)))
        return 0
    except CapitalError as exc:
        print(f"request failed: {exc}", file=sys.stderr)
        return 1
    finally:
        try:
            _paced(api.close_session)
        except CapitalError as exc:
            print(f"logout failed: {exc}", file=sys.stderr)


def main_time(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser("Print the API server time")
    args = parser.parse_args(argv)
    cfg = _load(args)
    try:
        _print(CapitalAPI.from_config(cfg).get_server_time())
    except CapitalError as exc:
        print(f"request failed: {exc}", file=sys.stderr)
        return 1
    return 0


def main_balance(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser("Print the balance of the active account")
    args = parser.parse_args(argv)
    return _with_session(_load(args), lambda api: api.get_balance())


def main_positions(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser("List open positions")
    args = parser.parse_args(argv)
    return _with_session(_load(args), lambda api: api.get_all_positions())


def main_search(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser("Search markets by term or epic")
    parser.add_argument("term", help="Search term, e.g. Tesla")
    parser.add_argument("--epic", action="append", default=[], help="Restrict to an epic (repeatable)")
    args = parser.parse_args(argv)
    return _with_session(_load(args), lambda api: api.search_market(args.term, args.epic))


def main_prices(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser("Print historical prices for an epic")
    parser.add_argument("epic")
    parser.add_argument(
        "--resolution",
        default=Resolution.HOUR.value,
        choices=[r.value for r in Resolution],
    )
    parser.add_argument("--from", dest="start", required=True, help="Start date (UTC if no zone)")
    parser.add_argument("--to", dest="end", required=True, help="End date (UTC if no zone)")
    parser.add_argument("--max", dest="max_points", type=int, default=None)
    args = parser.parse_args(argv)
    try:
        start = parse_user_time(args.start)
        end = parse_user_time(args.end)
    except ValueError as exc:
        parser.error(str(exc))
    resolution = Resolution.from_wire(args.resolution)
    return _with_session(
        _load(args),
        lambda api: api.get_historical_prices(args.epic, resolution, start, end, args.max_points),
    )


if __name__ == "__main__":
    sys.exit(main_balance())
