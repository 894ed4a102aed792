"""Turns an ``Operation`` into one HTTP exchange and a decoded result.

The dispatcher does not lock anything itself; callers hold
``ClientState.locked()`` for the whole call.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Tuple

import requests

from capclient.credentials import API_KEY_HEADER
from capclient.endpoints import Operation
from capclient.errors import JsonError, StatusCodeError, TransportError, Unauthorized
from capclient.http_client import RateGate
from capclient.models import ApiError
from capclient.state import ClientState

logger = logging.getLogger(__name__)


class RequestDispatcher:
    def __init__(
        self,
        state: ClientState,
        session: requests.Session,
        base_url: str,
        api_key: str,
        timeout: Optional[float] = None,
        gate: Optional[RateGate] = None,
    ) -> None:
        self.state = state
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.gate = gate or RateGate(clock=state.clock)

    def execute(self, operation: Operation) -> Tuple[Dict[str, str], Any]:
        if operation.requires_auth:
            self.state.credentials.has_credentials()
        self.gate.check_allowed(self.state.last_request_at, operation.min_interval_ms)

        headers = self._headers(operation)
        data = None
        if operation.body is not None:
            data = _encode(operation.body)
            headers["Content-Type"] = "application/json"

        logger.debug("request %s %s", operation.method, operation.path)
        try:
            resp = self.session.request(
                operation.method,
                self.base_url + operation.path,
                params=list(operation.params) or None,
                data=data,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.debug("transport failure %s %s: %s", operation.method, operation.path, exc)
            raise TransportError(exc) from exc

        try:
            response_headers = {str(k).lower(): str(v) for k, v in resp.headers.items()}
            logger.debug("response %s %s status=%s", operation.method, operation.path, resp.status_code)
            body = self._decode(operation, resp)
        finally:
            self.state.last_request_at = self.state.clock()

        if operation.refreshes_session:
            self.state.credentials.update_from(response_headers)
        return response_headers, body

    def _headers(self, operation: Operation) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if operation.uses_api_key:
            headers[API_KEY_HEADER] = self.api_key
        if operation.requires_auth:
            headers.update(self.state.credentials.auth_headers)
        return headers

    def _decode(self, operation: Operation, resp: requests.Response) -> Any:
        raw = resp.text
        if resp.status_code != 200:
            api_error = _api_error(raw)
            error_cls = Unauthorized if resp.status_code == 401 else StatusCodeError
            raise error_cls(resp.status_code, api_error, raw)

        try:
            payload = json.loads(raw)
        except ValueError as exc:
            raise JsonError(f"{operation.name}: response is not JSON: {exc}", raw) from exc
        if not isinstance(payload, dict):
            raise JsonError(f"{operation.name}: expected a JSON object", raw)
        try:
            return operation.decode(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise JsonError(f"{operation.name}: unexpected response shape: {exc!r}", raw) from exc


def _encode(body: Dict[str, Any]) -> str:
    try:
        return json.dumps(body, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise JsonError(f"could not encode request body: {exc}") from exc


def _api_error(raw: str) -> Optional[ApiError]:
    try:
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            return None
        return ApiError.from_dict(payload)
    except (KeyError, TypeError, ValueError):
        return None
