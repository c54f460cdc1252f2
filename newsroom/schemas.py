from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, field_validator

from newsroom.models import ArticleStatus, Role, VideoType


# --- Auth ---

class RegisterRequest(BaseModel):
    name: str = Field(min_length=2, max_length=150)
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)

    @field_validator("password")
    @classmethod
    def _password_fits_bcrypt(cls, value: str) -> str:
        # bcrypt rejects input longer than 72 bytes, not characters
        if len(value.encode("utf-8")) > 72:
            raise ValueError("Password must be at most 72 bytes")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)


class UserPublic(BaseModel):
    id: int
    name: str
    email: str
    role: Role
    model_config = ConfigDict(from_attributes=True)


class UserProfile(UserPublic):
    created_at: datetime


class AuthResponse(BaseModel):
    message: str
    user: UserPublic


class ProfileResponse(BaseModel):
    user: UserProfile


class MessageResponse(BaseModel):
    message: str


# --- Admin / users ---

class AdminUserCreate(RegisterRequest):
    role: Role = Role.USER


class UserRoleUpdate(BaseModel):
    role: Role


class UserAdminView(UserPublic):
    is_active: bool
    created_at: datetime
    updated_at: datetime | None = None


class ArticleStatusUpdate(BaseModel):
    status: ArticleStatus


# --- Category ---

class CategoryCreate(BaseModel):
    name: str = Field(min_length=2, max_length=150)
    description: str | None = None
    is_active: bool | None = None
    parent_id: int | None = None


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=2, max_length=150)
    description: str | None = None
    is_active: bool | None = None
    parent_id: int | None = None


# --- Article ---

TagName = Annotated[str, Field(min_length=1, max_length=100)]


class VideoIn(BaseModel):
    type: VideoType
    url: HttpUrl
    title: str | None = None
    description: str | None = None


class ArticleCreate(BaseModel):
    title: str = Field(min_length=3, max_length=300)
    content: str = Field(min_length=10)
    category_id: int | None = None
    cover_image: HttpUrl | None = None
    excerpt: str | None = Field(None, max_length=500)
    meta_title: str | None = Field(None, max_length=60)
    meta_description: str | None = Field(None, max_length=160)
    tags: list[TagName] = []
    videos: list[VideoIn] = []

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("cover_image", mode="before")
    @classmethod
    def _blank_cover_image(cls, value):
        return value or None


class ArticleUpdate(BaseModel):
    title: str | None = Field(None, min_length=3, max_length=300)
    content: str | None = Field(None, min_length=10)
    category_id: int | None = None
    cover_image: HttpUrl | None = None
    excerpt: str | None = Field(None, max_length=500)
    meta_title: str | None = Field(None, max_length=60)
    meta_description: str | None = Field(None, max_length=160)
    tags: list[TagName] | None = None
    videos: list[VideoIn] | None = None

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("cover_image", mode="before")
    @classmethod
    def _blank_cover_image(cls, value):
        return value or None


# --- Comment ---

class CommentCreate(BaseModel):
    article_id: int
    content: str = Field(min_length=1, max_length=5000)


class CommentUpdate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)


# --- Bookmark ---

class BookmarkRequest(BaseModel):
    article_id: int


# --- Pagination ---

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
