from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cms.models import as_utc


# --- Errors ---

class ErrorResponse(BaseModel):
    code: str
    message: str


class MessageResponse(BaseModel):
    message: str


# --- User ---

class UserBase(BaseModel):
    name: str = Field(max_length=150)
    email: str = Field(max_length=255)


class UserCreate(UserBase):
    pass


class UserUpdate(UserBase):
    pass


class UserResponse(UserBase):
    id: int
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Auth ---

class AuthenticatedPrincipal(BaseModel):
    """Request-scoped projection of the user behind a bearer token."""

    id: int
    name: str
    email: str
    model_config = ConfigDict(from_attributes=True, frozen=True)


class LoginRequest(BaseModel):
    token: str = ""


class LoginResponse(BaseModel):
    message: str
    user: UserResponse


# --- Article ---

# Missing fields fall back to empty values so the service layer reports
# them as InvalidArgumentError rather than a schema error.
class ArticleWrite(BaseModel):
    user_id: int = 0
    title: str = Field("", max_length=300)
    content: str = ""
    # Unix timestamp or ISO-8601; None means draft.
    published_at: datetime | None = None

    _published_at_utc = field_validator("published_at")(as_utc)


class ArticleCreate(ArticleWrite):
    pass


class ArticleUpdate(ArticleWrite):
    pass


class ArticlePublish(BaseModel):
    published_at: datetime | None = None

    _published_at_utc = field_validator("published_at")(as_utc)


class ArticleResponse(BaseModel):
    id: int
    user_id: int
    title: str
    content: str
    status: Literal["draft", "published"]
    published_at: datetime | None
    created_at: datetime
    updated_at: datetime


# --- Comment ---

class CommentCreate(BaseModel):
    content: str = ""
    # Required when the commenter is not logged in.
    author_name: str | None = Field(None, max_length=150)


class CommentResponse(BaseModel):
    id: int
    article_id: int
    user_id: int | None
    author_name: str | None
    content: str
    created_at: datetime
