"""Optional HTTP Basic auth for the operator's HTTP surface."""

from __future__ import annotations

import base64
import binascii
import secrets
from dataclasses import dataclass
from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


@dataclass(frozen=True)
class BasicAuthCredentials:
    username: str
    password: str


def _parse_basic_auth_header(header_value: str) -> BasicAuthCredentials | None:
    """Decode ``Authorization: Basic ...``; None when absent or malformed."""
    scheme, _, param = (header_value or "").partition(" ")
    if scheme.lower() != "basic" or not param:
        return None

    try:
        decoded = base64.b64decode(param, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None

    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return BasicAuthCredentials(username=username, password=password)


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """Require Basic auth everywhere except the public paths.

    The admission webhook is called by the cluster API server, which
    authenticates with TLS rather than a password, so it stays public.
    """

    def __init__(
        self,
        app,
        *,
        username: str,
        password: str,
        public_paths: Iterable[str] = ("/health",),
        public_prefixes: Iterable[str] = ("/admission/",),
        realm: str = "IssueOperator",
    ):
        super().__init__(app)
        self._expected = BasicAuthCredentials(username=username, password=password)
        self._public_paths = frozenset(public_paths)
        self._public_prefixes = tuple(public_prefixes)
        self._realm = realm

    def _is_public(self, path: str) -> bool:
        return path in self._public_paths or path.startswith(self._public_prefixes)

    def _authorized(self, creds: BasicAuthCredentials | None) -> bool:
        if creds is None:
            return False
        # Compare both to keep timing independent of which part is wrong.
        ok_user = secrets.compare_digest(creds.username, self._expected.username)
        ok_pass = secrets.compare_digest(creds.password, self._expected.password)
        return ok_user and ok_pass

    async def dispatch(self, request: Request, call_next):
        if self._is_public(request.url.path):
            return await call_next(request)

        creds = _parse_basic_auth_header(request.headers.get("Authorization", ""))
        if not self._authorized(creds):
            return Response(
                content="Unauthorized",
                status_code=401,
                headers={"WWW-Authenticate": f'Basic realm="{self._realm}", charset="UTF-8"'},
            )
        return await call_next(request)
