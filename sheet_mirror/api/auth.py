"""API key verification for the sync HTTP surface."""
from __future__ import annotations

import hmac
import os

from fastapi import Header, HTTPException, status

DEV_BYPASS_ENV = "SHEET_MIRROR_DEV_AUTH_BYPASS"
API_KEY_ENV = "SHEET_MIRROR_API_KEY"


class AuthError(HTTPException):
    def __init__(self, detail: str, code: int = status.HTTP_401_UNAUTHORIZED) -> None:
        super().__init__(status_code=code, detail=detail)


def require_api_key(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> None:
    """Reject requests that do not carry the configured API key.

    The check is skipped when no key is configured or when
    SHEET_MIRROR_DEV_AUTH_BYPASS=1 (local development only).
    """

    if os.getenv(DEV_BYPASS_ENV) == "1":
        return

    expected = os.getenv(API_KEY_ENV)
    if not expected:
        return

    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError("Missing Bearer token.")

    token = authorization.split(" ", 1)[1].strip()
    if not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        raise AuthError("Invalid API key.")
