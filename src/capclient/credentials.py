"""Login credentials and the session tokens handed out by the API."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Mapping

from capclient.errors import MalformedHeader, MissingAuthorization
from capclient.util import mask

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-CAP-API-KEY"
SECURITY_TOKEN_HEADER = "X-SECURITY-TOKEN"
CST_HEADER = "CST"

# Anything outside visible latin-1 plus space/tab cannot go back out as a header value.
_INVALID_HEADER_VALUE_RE = re.compile(r"[^\t\x20-\x7e\x80-\xff]")


@dataclass(frozen=True)
class Credentials:
    identifier: str
    password: str
    api_key: str

    def __repr__(self) -> str:
        return f"Credentials(identifier={self.identifier!r}, password='***', api_key='***')"


def _checked(name: str, value: str) -> str:
    if _INVALID_HEADER_VALUE_RE.search(value):
        raise MalformedHeader(name)
    return value


class CredentialStore:
    """Holds the security token / CST pair and the header set derived from it.

    Empty strings mean "not authenticated". The header set is rebuilt from the
    tokens on every update and is never edited on its own.
    """

    def __init__(self) -> None:
        self._security_token = ""
        self._cst = ""
        self._auth_headers: Dict[str, str] = self._build_headers("", "")

    @property
    def security_token(self) -> str:
        return self._security_token

    @property
    def cst(self) -> str:
        return self._cst

    @property
    def auth_headers(self) -> Dict[str, str]:
        return dict(self._auth_headers)

    def has_credentials(self) -> None:
        if not self._security_token and not self._cst:
            raise MissingAuthorization()

    def update_from(self, headers: Mapping[str, str]) -> None:
        # A missing header blanks its token; the other token is still taken.
        lowered = {str(k).lower(): str(v) for k, v in headers.items()}
        security_token = _checked(
            SECURITY_TOKEN_HEADER, lowered.get(SECURITY_TOKEN_HEADER.lower(), "")
        )
        cst = _checked(CST_HEADER, lowered.get(CST_HEADER.lower(), ""))
        auth_headers = self._build_headers(security_token, cst)

        self._security_token = security_token
        self._cst = cst
        self._auth_headers = auth_headers
        logger.debug(
            "session tokens refreshed security_token=%s cst=%s",
            mask(security_token),
            mask(cst),
        )

    @staticmethod
    def _build_headers(security_token: str, cst: str) -> Dict[str, str]:
        return {SECURITY_TOKEN_HEADER: security_token, CST_HEADER: cst}
