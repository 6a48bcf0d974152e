from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

# Shown in place of the author's name when the author record is gone.
UNKNOWN_USER = "Unknown User"


# --- User ---

class UserBase(BaseModel):
    full_name: str = Field(max_length=150)
    username: str = Field(max_length=100)


class UserCreate(UserBase):
    user_id: str | None = Field(None, max_length=64)


class UserResponse(UserBase):
    user_id: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Like ---

class LikeCreate(BaseModel):
    user_id: str


class LikeResponse(BaseModel):
    user_id: str


# --- Comment ---

class CommentCreate(BaseModel):
    user_id: str
    comment: str


class CommentUpdate(BaseModel):
    content: str


class CommentResponse(BaseModel):
    comment_id: str
    user_id: str
    full_name: str | None = None
    content: str


class CommentsCountResponse(BaseModel):
    post_id: str
    comments_count: int


# --- Post ---

class PostCreate(BaseModel):
    user_id: str
    post_caption: str | None = None
    location: str | None = Field(None, max_length=255)


class PostUpdate(BaseModel):
    # The requester; must match the post's owner.
    user_id: str
    post_caption: str | None = None
    location: str | None = Field(None, max_length=255)
    posted_date: datetime | None = None


class PostResponse(BaseModel):
    post_id: str
    user_id: str
    post_caption: str | None
    location: str | None
    posted_date: datetime | None
    media_url: str | None
    model_config = ConfigDict(from_attributes=True)

    @field_validator("posted_date")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        # Backends without timezone support hand back naive UTC values.
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class EnrichedPost(PostResponse):
    """A stored post joined with its author, likes and comment count."""

    comments: list[CommentResponse] = []
    likes_list: list[LikeResponse] = []
    likes_count: int = 0
    comments_count: int = 0
    # None when the author record is missing
    full_name: str | None = None
    username: str | None = None

    @field_serializer("full_name", "username", when_used="json")
    def _author_placeholder(self, value: str | None) -> str:
        return value if value is not None else UNKNOWN_USER
