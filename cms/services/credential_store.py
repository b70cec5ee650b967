"""
Credential store: lookup, issuance and revocation of opaque access tokens.

Tokens are looked up verbatim (no signature verification).  A token whose
``expires_at`` is not strictly after the resolution-time clock never
resolves; ``expires_at IS NULL`` marks a non-expiring token.

Like the other services these functions flush but never commit.
"""
import logging
import secrets
from datetime import datetime

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cms.auth import token_fingerprint
from cms.errors import ConflictError, InvalidArgumentError, NotFoundError
from cms.models import AccessToken, User, as_utc, utcnow

logger = logging.getLogger(__name__)


def generate_token() -> str:
    """Return a fresh URL-safe token string for operator tooling."""
    return secrets.token_urlsafe(32)


async def resolve_token(db: AsyncSession, token: str, now: datetime | None = None) -> User:
    """
    Return the user that owns *token*.

    Raises NotFoundError when no row matches or the token has expired
    relative to *now* (defaults to the wall clock).
    """
    now = as_utc(now) if now else utcnow()
    q = (
        select(User)
        .join(AccessToken, AccessToken.user_id == User.id)
        .where(
            AccessToken.token == token,
            or_(AccessToken.expires_at.is_(None), AccessToken.expires_at > now),
        )
        .limit(1)
    )
    user = (await db.execute(q)).scalar_one_or_none()
    if user is None:
        logger.debug("Token %s did not resolve", token_fingerprint(token))
        raise NotFoundError("Token not found or expired")
    return user


async def issue_token(
    db: AsyncSession,
    user_id: int,
    token: str,
    expires_at: datetime | None = None,
) -> AccessToken:
    """
    Create a credential row binding *token* to *user_id*.

    Raises ConflictError when the token string is already taken.
    """
    if not token:
        raise InvalidArgumentError("Token is required")
    if await db.get(User, user_id) is None:
        raise NotFoundError(f"User {user_id} not found")

    existing = await db.execute(select(AccessToken.id).where(AccessToken.token == token))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Token already exists")

    access_token = AccessToken(user_id=user_id, token=token, expires_at=as_utc(expires_at))
    db.add(access_token)
    try:
        await db.flush()
    except IntegrityError as exc:
        # Lost a race with a concurrent insert of the same token.
        raise ConflictError("Token already exists") from exc

    logger.info("Issued token %s for user_id=%d", token_fingerprint(token), user_id)
    return access_token


async def revoke_token(db: AsyncSession, token: str) -> None:
    """Delete the row for *token*; revoking an unknown token is a no-op."""
    result = await db.execute(delete(AccessToken).where(AccessToken.token == token))
    logger.info("Revoked token %s (rows=%d)", token_fingerprint(token), result.rowcount)
