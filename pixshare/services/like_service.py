"""
Like service: the like collection embedded in each post.

A like is just ``{"user_id": ...}``.  The same user may like a post more
than once; nothing here deduplicates.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from pixshare.cache import cache
from pixshare.errors import PostNotFoundError, UserNotFoundError
from pixshare.models import Post, User
from pixshare.schemas import LikeResponse
from pixshare.store import DocumentStore

logger = logging.getLogger(__name__)


async def add_like(db: AsyncSession, post_id: str, user_id: str) -> LikeResponse:
    """
    Append a like from *user_id* to the post identified by *post_id*.

    Both the post and the user must exist; otherwise nothing is written.
    """
    store = DocumentStore(db)

    post = await store.load(Post, post_id)
    if post is None:
        raise PostNotFoundError(post_id)

    user = await store.load(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    like = {"user_id": user_id}
    post.likes = [*(post.likes or []), like]
    await store.save(post)

    await cache.invalidate_posts(post_id, db=db)
    logger.info("User %s liked post %s", user_id, post_id)
    return LikeResponse(**like)


async def get_likes(db: AsyncSession, post_id: str) -> list[LikeResponse]:
    """Return the likes on *post_id* in the order they were added."""
    post = await DocumentStore(db).load(Post, post_id)
    if post is None:
        raise PostNotFoundError(post_id)
    return [LikeResponse(**like) for like in post.likes or []]
