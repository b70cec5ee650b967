"""
User service: CRUD operations for the User aggregate.

Email uniqueness is checked up front and backed by the unique constraint;
both paths surface as ConflictError.
"""
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cms.cache import cache
from cms.errors import ConflictError, InvalidArgumentError, NotFoundError
from cms.models import Article, User, as_utc, utcnow
from cms.schemas import UserBase


def user_to_dict(user: User) -> dict:
    """Serialise a User ORM instance to a plain dict."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "created_at": as_utc(user.created_at).isoformat(),
        "updated_at": as_utc(user.updated_at).isoformat(),
    }


def _validate(data: UserBase) -> None:
    if not data.email or not data.name:
        raise InvalidArgumentError("Email and name are required")


async def _load(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def _ensure_email_free(db: AsyncSession, email: str, exclude_id: int | None = None) -> None:
    q = select(User.id).where(User.email == email)
    if exclude_id is not None:
        q = q.where(User.id != exclude_id)
    if (await db.execute(q)).first() is not None:
        raise ConflictError("A user with this email already exists")


async def _flush(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError as exc:
        raise ConflictError("A user with this email already exists") from exc


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def list_users(db: AsyncSession) -> list[dict]:
    """Return all users ordered by id."""
    result = await db.execute(select(User).order_by(User.id))
    return [user_to_dict(u) for u in result.scalars().all()]


async def get_user(db: AsyncSession, user_id: int) -> dict:
    return user_to_dict(await _load(db, user_id))


async def create_user(db: AsyncSession, data: UserBase) -> dict:
    _validate(data)
    await _ensure_email_free(db, data.email)

    now = utcnow()
    user = User(name=data.name, email=data.email, created_at=now, updated_at=now)
    db.add(user)
    await _flush(db)
    return user_to_dict(user)


async def update_user(db: AsyncSession, user_id: int, data: UserBase) -> dict:
    """Replace name and email of an existing user and refresh ``updated_at``."""
    _validate(data)
    user = await _load(db, user_id)
    await _ensure_email_free(db, data.email, exclude_id=user_id)

    user.name = data.name
    user.email = data.email
    user.updated_at = utcnow()
    await _flush(db)
    return user_to_dict(user)


async def delete_user(db: AsyncSession, user_id: int) -> None:
    """Delete a user; their tokens, articles and comments cascade in the database."""
    user = await _load(db, user_id)
    article_ids = (await db.execute(select(Article.id).where(Article.user_id == user_id))).scalars().all()

    await db.delete(user)
    await db.flush()

    # Cascaded articles must not outlive the user in the read cache.
    cache.invalidate_after_commit(db)
    for article_id in article_ids:
        cache.invalidate_after_commit(db, article_id)
