"""
Comment service: append-only comments on articles.

A comment is attributed either to the authenticated principal
(``user_id``) or, for anonymous visitors, to a free-text
``temp_user_name``; never both.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cms.errors import InvalidArgumentError, NotFoundError
from cms.models import Article, Comment, as_utc, utcnow
from cms.schemas import AuthenticatedPrincipal, CommentCreate


def _comment_to_dict(comment: Comment) -> dict:
    created_at = as_utc(comment.created_at)
    return {
        "id": comment.id,
        "article_id": comment.article_id,
        "user_id": comment.user_id,
        "author_name": comment.temp_user_name,
        "content": comment.content,
        "created_at": created_at.isoformat() if created_at else None,
    }


async def _ensure_article(db: AsyncSession, article_id: int) -> None:
    if await db.get(Article, article_id) is None:
        raise NotFoundError("Article not found")


async def list_comments(db: AsyncSession, article_id: int) -> list[dict]:
    """Return the comments on *article_id*, oldest first."""
    await _ensure_article(db, article_id)
    result = await db.execute(
        select(Comment).where(Comment.article_id == article_id).order_by(Comment.id)
    )
    return [_comment_to_dict(c) for c in result.scalars().all()]


async def add_comment(
    db: AsyncSession,
    article_id: int,
    data: CommentCreate,
    principal: AuthenticatedPrincipal | None = None,
) -> dict:
    """
    Append a comment to *article_id*.

    Anonymous comments must carry ``author_name``; for authenticated
    commenters the name is ignored and ``user_id`` is recorded instead.
    """
    if not data.content:
        raise InvalidArgumentError("content is required")
    if principal is None and not data.author_name:
        raise InvalidArgumentError("author_name is required for anonymous comments")
    await _ensure_article(db, article_id)

    now = utcnow()
    comment = Comment(
        article_id=article_id,
        content=data.content,
        user_id=principal.id if principal else None,
        temp_user_name=None if principal else data.author_name,
        created_at=now,
        updated_at=now,
    )
    db.add(comment)
    await db.flush()
    return _comment_to_dict(comment)
