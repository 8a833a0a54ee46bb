"""
Name: API Dependencies (authentication)

Responsibilities:
  - Extract the bearer token from the Authorization header
  - Verify it and expose the caller's Claims to route handlers
  - Bind subject/audience into the logging context
  - Parse HTTP Basic credentials for the token endpoint
  - Build a FindRequest from list query parameters

Constraints:
  - Every token failure is the same 401 (no hint about why)
"""

from __future__ import annotations

import base64
import binascii
from typing import Optional

from fastapi import Depends, Header, Query

from ..container import get_authenticator
from ..crosscutting.context import audience_var, subject_var
from ..crosscutting.error_responses import unauthorized
from ..crosscutting.exceptions import InvalidToken
from ..domain.repositories import FindRequest
from ..identity.authenticator import Authenticator
from ..identity.claims import Claims


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


def require_claims(
    authorization: str | None = Header(None, alias="Authorization"),
    authenticator: Authenticator = Depends(get_authenticator),
) -> Claims:
    """R: FastAPI dependency that requires a valid session token."""
    token = _extract_bearer_token(authorization)
    if not token:
        raise unauthorized("Missing bearer token.")
    try:
        claims = authenticator.verify(token)
    except InvalidToken:
        raise unauthorized("Invalid or expired token.") from None

    subject_var.set(str(claims.subject))
    audience_var.set(str(claims.audience))
    return claims


def basic_credentials(
    authorization: str | None = Header(None, alias="Authorization"),
) -> tuple[str, str]:
    """R: (email, password) from HTTP Basic; missing/garbled -> 401."""
    if not authorization:
        raise unauthorized("Must provide email and password in Basic auth.")
    scheme, _, encoded = authorization.strip().partition(" ")
    if scheme.lower() != "basic" or not encoded:
        raise unauthorized("Must provide email and password in Basic auth.")
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise unauthorized("Must provide email and password in Basic auth.") from None
    email, sep, password = decoded.partition(":")
    if not sep:
        raise unauthorized("Must provide email and password in Basic auth.")
    return email, password


def find_request(
    order: Optional[str] = Query(None, description="Comma separated, e.g. 'created_at desc,id'"),
    limit: Optional[int] = Query(None, ge=0),
    offset: Optional[int] = Query(None, ge=0),
    include_archived: bool = Query(False),
) -> FindRequest:
    return FindRequest(
        order=tuple(o.strip() for o in (order or "").split(",") if o.strip()),
        limit=limit,
        offset=offset,
        include_archived=include_archived,
    )
