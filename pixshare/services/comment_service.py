"""
Comment service: comments embedded in a post document.

Every operation is one load-mutate-save cycle on the whole post.  Two
concurrent writers on the same post race and the last save wins; there
is no version check.

The commenter's full name is copied onto the comment when it is
written and is not refreshed if the user later changes it.
"""
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from pixshare.cache import cache
from pixshare.errors import CommentNotFoundError, PostNotFoundError, UserNotFoundError
from pixshare.models import Post, User
from pixshare.schemas import CommentCreate, CommentResponse, CommentUpdate
from pixshare.store import DocumentStore

logger = logging.getLogger(__name__)


async def _load_post(store: DocumentStore, post_id: str) -> Post:
    post = await store.load(Post, post_id)
    if post is None:
        raise PostNotFoundError(post_id)
    return post


def _find_comment(post: Post, comment_id: str) -> dict:
    for comment in post.comments or []:
        if comment.get("comment_id") == comment_id:
            return comment
    raise CommentNotFoundError(comment_id)


async def add_comment(
    db: AsyncSession,
    post_id: str,
    data: CommentCreate,
) -> CommentResponse:
    """
    Append a comment by ``data.user_id`` to the post identified by *post_id*.

    Raises PostNotFoundError / UserNotFoundError before anything is written.
    """
    store = DocumentStore(db)
    post = await _load_post(store, post_id)

    user = await store.load(User, data.user_id)
    if user is None:
        raise UserNotFoundError(data.user_id)

    comment = {
        "comment_id": str(uuid.uuid4()),
        "user_id": data.user_id,
        "full_name": user.full_name,
        "content": data.comment,
    }
    post.comments = [*(post.comments or []), comment]
    await store.save(post)

    await cache.invalidate_posts(post_id, db=db)
    logger.info("Comment %s added to post %s", comment["comment_id"], post_id)
    return CommentResponse(**comment)


async def edit_comment(
    db: AsyncSession,
    post_id: str,
    comment_id: str,
    data: CommentUpdate,
) -> CommentResponse:
    """Replace the content of *comment_id* on *post_id*, keeping its position."""
    store = DocumentStore(db)
    post = await _load_post(store, post_id)
    target = _find_comment(post, comment_id)

    # Copy rather than edit in place so the JSON column is flagged dirty.
    updated = {**target, "content": data.content}
    post.comments = [updated if c is target else c for c in post.comments]
    await store.save(post)

    await cache.invalidate_posts(post_id, db=db)
    return CommentResponse(**updated)


async def delete_comment(db: AsyncSession, post_id: str, comment_id: str) -> None:
    """Remove *comment_id* from *post_id*."""
    store = DocumentStore(db)
    post = await _load_post(store, post_id)
    target = _find_comment(post, comment_id)

    post.comments = [c for c in post.comments if c is not target]
    await store.save(post)

    await cache.invalidate_posts(post_id, db=db)
    logger.info("Comment %s deleted from post %s", comment_id, post_id)


async def get_comments_count(db: AsyncSession, post_id: str) -> int:
    """
    Return the number of comments on *post_id*.

    A missing post raises PostNotFoundError, so zero always means the
    post exists and has no comments.
    """
    post = await _load_post(DocumentStore(db), post_id)
    return len(post.comments or [])
