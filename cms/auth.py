"""
Bearer token extraction and request-scoped principal binding.

Token lookup order
------------------
1. ``Authorization: Bearer <token>`` header (scheme is case-insensitive).
2. The auth cookie (``settings.AUTH_COOKIE_NAME``).

A header that uses the Bearer scheme is authoritative even when the token
part is blank: ``"Bearer "`` yields no token and the cookie is not read.
A header with another scheme, or without a space separator, is ignored
and the cookie is consulted instead.
"""
from __future__ import annotations

import hashlib

from fastapi import Request

from cms.config import settings
from cms.schemas import AuthenticatedPrincipal

# Attribute name on ``request.state``; prefixed to stay clear of other
# middleware that writes to the same namespace.
PRINCIPAL_STATE_KEY = "cms_principal"


def extract_token(authorization: str | None, cookie: str | None) -> str | None:
    """Return the candidate bearer token, or None when the request carries none."""
    if authorization:
        parts = authorization.split(" ", 1)
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1].strip() or None

    if cookie:
        return cookie
    return None


def token_from_request(request: Request) -> str | None:
    return extract_token(
        request.headers.get("Authorization"),
        request.cookies.get(settings.AUTH_COOKIE_NAME),
    )


def token_fingerprint(token: str) -> str:
    """Short non-reversible identifier for log lines; raw tokens are never logged."""
    return "tok-" + hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]


def bind_principal(request: Request, principal: AuthenticatedPrincipal) -> None:
    setattr(request.state, PRINCIPAL_STATE_KEY, principal)


def current_principal(request: Request) -> AuthenticatedPrincipal | None:
    """
    Return the principal bound to *request*, or None if the request was not
    authenticated.
    """
    principal = getattr(request.state, PRINCIPAL_STATE_KEY, None)
    if isinstance(principal, AuthenticatedPrincipal):
        return principal
    return None
