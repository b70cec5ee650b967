from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from cms.config import settings
from cms.database import get_db
from cms.dependencies import require_principal
from cms.schemas import AuthenticatedPrincipal, LoginRequest, LoginResponse, MessageResponse
from cms.services import session_service
from cms.services.user_service import user_to_dict

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _cookie_attrs() -> dict:
    return {
        "path": "/",
        "httponly": True,
        "secure": settings.AUTH_COOKIE_SECURE,
        "samesite": "strict",
    }


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest, response: Response, db: AsyncSession = Depends(get_db)):
    user = await session_service.login(db, data.token)
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        data.token,
        max_age=settings.AUTH_COOKIE_MAX_AGE,
        **_cookie_attrs(),
    )
    return {"message": "Login successful", "user": user_to_dict(user)}


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    # Only the browser cookie is cleared; the token row stays valid.
    response.delete_cookie(settings.AUTH_COOKIE_NAME, **_cookie_attrs())
    return {"message": "Logout successful"}


@router.get("/me", response_model=AuthenticatedPrincipal)
async def me(principal: AuthenticatedPrincipal = Depends(require_principal)):
    return principal
