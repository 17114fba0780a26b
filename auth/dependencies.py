"""
auth/dependencies.py -- FastAPI helpers for credential extraction and identity.

HTTP Basic is the only credential transport. extract_credentials() turns the
Authorization header into Credentials (or None); the access-control
middleware in api/main.py feeds that to AccessPolicy.decide() before routing
and stores the verified User on request.state.user.

The header payload is decoded as UTF-8 (RFC 7617 charset="UTF-8"), not the
ASCII that fastapi.security.HTTPBasic assumes, so users with non-ASCII
usernames or passwords can log in.

denial() is the single place a DENY outcome becomes an HTTP error: the
middleware renders it directly, get_current_user() raises it.

Layer rule: auth/dependencies.py may import from fastapi (for
HTTPException/Request) because this module is part of the FastAPI
dependency injection system.
"""

from __future__ import annotations

import base64
import binascii

from fastapi import HTTPException, Request
from fastapi.security.utils import get_authorization_scheme_param

from auth.models import AccessRequest, Credentials, Outcome, User
from core.config import get_settings

_DENIALS = {
    Outcome.DENY_UNAUTHENTICATED: (401, "unauthorized", "Authentication required."),
    Outcome.DENY_FORBIDDEN: (403, "forbidden", "You do not have permission to access this resource."),
}


def challenge_headers() -> dict[str, str]:
    """Headers for a 401 response: the Basic challenge for the configured realm."""
    return {"WWW-Authenticate": f'Basic realm="{get_settings().auth_realm}"'}


def denial(outcome: Outcome) -> HTTPException:
    """Build the HTTPException for a DENY outcome. 401s carry the Basic challenge."""
    status_code, code, message = _DENIALS[outcome]
    headers = challenge_headers() if status_code == 401 else None
    return HTTPException(
        status_code=status_code,
        detail={"code": code, "message": message, "detail": None},
        headers=headers,
    )


def parse_basic_authorization(header: str | None) -> Credentials | None:
    """Decode an "Authorization: Basic ..." value. None if absent, another scheme, or malformed."""
    scheme, param = get_authorization_scheme_param(header)
    if scheme.lower() != "basic" or not param:
        return None
    try:
        decoded = base64.b64decode(param, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return Credentials(username=username, password=password)


def extract_credentials(request: Request) -> Credentials | None:
    return parse_basic_authorization(request.headers.get("Authorization"))


def access_request_from(request: Request) -> AccessRequest:
    return AccessRequest(path=request.url.path, credentials=extract_credentials(request))


def get_current_user(request: Request) -> User:
    """Require a verified identity. Raises HTTP 401 if there is none.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = getattr(request.state, "user", None)
    if user is None:
        raise denial(Outcome.DENY_UNAUTHENTICATED)
    return user
