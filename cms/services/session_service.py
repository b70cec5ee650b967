"""
Session service: the login side of the cookie session.

Login only proves that a token already exists and is live; issuing the
cookie itself is the router's job.  Logout has no service counterpart:
it clears the cookie and leaves the token row in place.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cms.auth import token_fingerprint
from cms.errors import InternalError, InvalidArgumentError, NotFoundError, UnauthorizedError
from cms.models import User
from cms.services import credential_store

logger = logging.getLogger(__name__)


async def login(db: AsyncSession, token: str) -> User:
    """
    Return the user owning *token*.

    Raises InvalidArgumentError for an empty token, UnauthorizedError for
    an unknown or expired one and InternalError when the lookup fails.
    """
    if not token:
        raise InvalidArgumentError("Token is required")

    try:
        user = await credential_store.resolve_token(db, token)
    except NotFoundError as exc:
        logger.warning("login.rejected token=%s reason=invalid_or_expired", token_fingerprint(token))
        raise UnauthorizedError("Invalid or expired token") from exc
    except SQLAlchemyError as exc:
        logger.exception("login.failed token=%s", token_fingerprint(token))
        raise InternalError("Internal server error") from exc

    logger.info("login.accepted user_id=%d", user.id)
    return user
