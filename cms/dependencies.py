"""Authorization gate exposed as FastAPI dependencies."""

from __future__ import annotations

import logging

from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cms.auth import bind_principal, token_fingerprint, token_from_request
from cms.database import get_db
from cms.errors import InternalError, NotFoundError, UnauthorizedError
from cms.schemas import AuthenticatedPrincipal
from cms.services import credential_store

logger = logging.getLogger(__name__)


async def _authenticate(request: Request, db: AsyncSession, token: str) -> AuthenticatedPrincipal:
    try:
        user = await credential_store.resolve_token(db, token)
    except NotFoundError as exc:
        logger.warning(
            "auth.rejected method=%s path=%s token=%s reason=invalid_or_expired",
            request.method,
            request.url.path,
            token_fingerprint(token),
        )
        raise UnauthorizedError("Invalid or expired token") from exc
    except SQLAlchemyError as exc:
        logger.exception("auth.failed method=%s path=%s", request.method, request.url.path)
        raise InternalError("Internal server error") from exc

    principal = AuthenticatedPrincipal.model_validate(user)
    bind_principal(request, principal)
    logger.debug(
        "auth.accepted method=%s path=%s user_id=%d",
        request.method,
        request.url.path,
        principal.id,
    )
    return principal


async def require_principal(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedPrincipal:
    """
    Resolve the request's bearer token and bind the principal to the request.

    Raises UnauthorizedError before the endpoint runs when no token is
    presented or the token is unknown or expired.
    """
    token = token_from_request(request)
    if token is None:
        logger.warning(
            "auth.rejected method=%s path=%s reason=no_token",
            request.method,
            request.url.path,
        )
        raise UnauthorizedError("No token provided")
    return await _authenticate(request, db, token)


async def optional_principal(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedPrincipal | None:
    """
    Like ``require_principal`` but lets anonymous requests through.

    A token that is presented but invalid is still rejected.
    """
    token = token_from_request(request)
    if token is None:
        return None
    return await _authenticate(request, db, token)
