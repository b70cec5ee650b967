from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cms.database import get_db
from cms.dependencies import optional_principal, require_principal
from cms.schemas import (
    ArticleCreate,
    ArticlePublish,
    ArticleResponse,
    ArticleUpdate,
    AuthenticatedPrincipal,
    CommentCreate,
    CommentResponse,
)
from cms.services import article_service, comment_service

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])


@router.get("", response_model=list[ArticleResponse])
async def list_articles(db: AsyncSession = Depends(get_db)):
    return await article_service.list_articles(db)


@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(article_id: int, db: AsyncSession = Depends(get_db)):
    return await article_service.get_article(db, article_id)


@router.post("", status_code=201, response_model=ArticleResponse)
async def create_article(data: ArticleCreate, db: AsyncSession = Depends(get_db)):
    return await article_service.create_article(db, data)


# Any authenticated user may edit or delete any article; authorship is not checked.
@router.put("/{article_id}", response_model=ArticleResponse)
async def update_article(
    article_id: int,
    data: ArticleUpdate,
    _: AuthenticatedPrincipal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.update_article(db, article_id, data)


@router.post("/{article_id}/publish", response_model=ArticleResponse)
async def publish_article(
    article_id: int,
    data: ArticlePublish | None = None,
    _: AuthenticatedPrincipal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    at = data.published_at if data else None
    return await article_service.publish_article(db, article_id, at=at)


@router.delete("/{article_id}", status_code=204)
async def delete_article(
    article_id: int,
    _: AuthenticatedPrincipal = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    await article_service.delete_article(db, article_id)


@router.get("/{article_id}/comments", response_model=list[CommentResponse])
async def list_comments(article_id: int, db: AsyncSession = Depends(get_db)):
    return await comment_service.list_comments(db, article_id)


@router.post("/{article_id}/comments", status_code=201, response_model=CommentResponse)
async def add_comment(
    article_id: int,
    data: CommentCreate,
    principal: AuthenticatedPrincipal | None = Depends(optional_principal),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.add_comment(db, article_id, data, principal)
