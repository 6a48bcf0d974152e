from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from pixshare.database import Base


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    full_name: Mapped[str] = mapped_column(String(150), nullable=False)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


# ---------------------------------------------------------------------------
# Post
#
# Comments and likes are embedded documents stored in JSON columns; they
# have no table of their own.  Mutations must assign a new list (never
# edit the loaded one in place) so the change is picked up on flush.
# ---------------------------------------------------------------------------
class Post(Base):
    __tablename__ = "posts"

    __table_args__ = (
        # Profile feed: a user's posts
        Index("ix_posts_user_id_posted_date", "user_id", "posted_date"),
    )

    post_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    post_caption: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    posted_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    media_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # [{"comment_id", "user_id", "full_name", "content"}, ...] in insertion order
    comments: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    # [{"user_id"}, ...]
    likes: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
