from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml

from capclient.enums import SessionType


def _get(d: Dict[str, Any], key: str, default: Any) -> Any:
    if key not in d or d[key] is None:
        return default
    return d[key]


@dataclass
class ApiConfig:
    environment: SessionType = SessionType.DEMO
    api_key: str = ""
    identifier: str = ""
    password: str = ""
    request_timeout_seconds: Optional[float] = None
    retry_count: int = 0


@dataclass
class SessionConfig:
    timeout_seconds: float = 600.0
    keepalive_ratio: float = 0.9
    keepalive_tick_seconds: float = 0.2
    lock_timeout_seconds: Optional[float] = 60.0


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class Config:
    api: ApiConfig = field(default_factory=ApiConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


ENV_OVERRIDES = {
    "api_key": "CAPCLIENT_API_KEY",
    "identifier": "CAPCLIENT_IDENTIFIER",
    "password": "CAPCLIENT_PASSWORD",
}


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def load_config(path: str) -> Config:
    with open(path, "r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    return parse_config(raw)


def parse_config(raw: Dict[str, Any]) -> Config:
    api_raw = raw.get("api") or {}
    session_raw = raw.get("session") or {}
    logging_raw = raw.get("logging") or {}

    environment = str(_get(api_raw, "environment", "demo")).lower()
    try:
        session_type = SessionType.from_wire(environment)
    except ValueError:
        raise ValueError(f"api.environment must be 'live' or 'demo', got '{environment}'") from None

    secrets = {
        key: os.environ.get(env_name) or str(_get(api_raw, key, ""))
        for key, env_name in ENV_OVERRIDES.items()
    }

    api = ApiConfig(
        environment=session_type,
        api_key=secrets["api_key"],
        identifier=secrets["identifier"],
        password=secrets["password"],
        request_timeout_seconds=_optional_float(api_raw.get("request_timeout_seconds")),
        retry_count=int(_get(api_raw, "retry_count", 0)),
    )

    session = SessionConfig(
        timeout_seconds=float(_get(session_raw, "timeout_seconds", 600.0)),
        keepalive_ratio=float(_get(session_raw, "keepalive_ratio", 0.9)),
        keepalive_tick_seconds=float(_get(session_raw, "keepalive_tick_seconds", 0.2)),
        lock_timeout_seconds=_optional_float(_get(session_raw, "lock_timeout_seconds", 60.0)),
    )
    if not 0 < session.keepalive_ratio <= 1:
        raise ValueError("session.keepalive_ratio must be in (0, 1]")

    return Config(
        api=api,
        session=session,
        logging=LoggingConfig(level=str(_get(logging_raw, "level", "INFO")).upper()),
    )
