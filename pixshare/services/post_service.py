"""
Post service: business logic for the Post aggregate.

Design notes
------------
- A post is only created together with its media: the file is uploaded
  to the blob store under the new post id, and the post's ``media_url``
  is derived from that key.  A request without media stores nothing.
- Reads are *enriched*: each stored post is joined with its author's
  name, its like list and count, and its comment count.  The author is
  fetched per post; likes and counts come from the post document itself.
- A missing author is handled differently per read:
    * ``get_all_posts``       - the post is kept, author fields are None
    * ``get_post_by_id``      - UserNotFoundError
    * ``get_posts_by_user_id`` - the whole result is dropped ([])
- Enriched reads go through the cache-aside pattern; every write
  invalidates the feeds.
- Only the owner may edit or delete a post.  Deletion removes the blob
  first and keeps the record if that fails.
"""
import logging
import os
import uuid
from datetime import datetime, timezone

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from pixshare.blob_store import BlobStore
from pixshare.cache import POST_DETAIL_KEY, POSTS_BY_USER_KEY, POSTS_LIST_KEY, cache
from pixshare.config import settings
from pixshare.errors import (
    BlobStoreError,
    PostNotFoundError,
    UnauthorizedError,
    UserNotFoundError,
)
from pixshare.models import Post, User
from pixshare.schemas import (
    CommentResponse,
    EnrichedPost,
    PostCreate,
    PostResponse,
    PostUpdate,
)
from pixshare.services import comment_service, like_service
from pixshare.store import DocumentStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _media_size(media: UploadFile) -> int:
    """Byte length of *media*, measured on the stream when the size is unknown."""
    if media.size is not None:
        return media.size
    stream = media.file
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


async def _enrich(db: AsyncSession, post: Post, user: User | None) -> EnrichedPost:
    likes = await like_service.get_likes(db, post.post_id)
    comments_count = await comment_service.get_comments_count(db, post.post_id)
    return EnrichedPost(
        **PostResponse.model_validate(post).model_dump(),
        comments=[CommentResponse(**c) for c in post.comments or []],
        likes_list=likes,
        likes_count=len(likes),
        comments_count=comments_count,
        full_name=user.full_name if user else None,
        username=user.username if user else None,
    )


async def _cached_feed(key: str) -> list[EnrichedPost] | None:
    cached = await cache.get(key)
    if cached is None:
        return None
    return [EnrichedPost.model_validate(p) for p in cached]


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def create_post(
    db: AsyncSession,
    blobs: BlobStore,
    data: PostCreate,
    media: UploadFile | None,
) -> PostResponse | None:
    """
    Upload *media* and store a new post for ``data.user_id``.

    Returns None without touching either store when *media* is missing
    or empty.  The media stream is closed once the upload returns.  A
    failed upload raises BlobStoreError; a failed save raises StoreError
    and leaves the uploaded blob in place.
    """
    if media is None or _media_size(media) == 0:
        logger.info("Post by user %s has no media attached; nothing stored", data.user_id)
        return None

    post_id = str(uuid.uuid4())
    try:
        media_url = await blobs.upload(
            post_id, media.file, media.content_type, settings.MEDIA_ACL
        )
    finally:
        await media.close()

    post = Post(
        post_id=post_id,
        user_id=data.user_id,
        post_caption=data.post_caption,
        location=data.location,
        posted_date=datetime.now(timezone.utc),
        media_url=media_url,
        comments=[],
        likes=[],
    )
    await DocumentStore(db).save(post)

    await cache.invalidate_posts(db=db)
    logger.info("Created post %s for user %s", post_id, data.user_id)
    return PostResponse.model_validate(post)


async def get_all_posts(db: AsyncSession) -> list[EnrichedPost]:
    """
    Return every post, enriched.

    Posts without an id are skipped.  Posts whose author no longer
    exists are kept with empty author fields.
    """
    cached = await _cached_feed(POSTS_LIST_KEY)
    if cached is not None:
        return cached

    store = DocumentStore(db)
    enriched: list[EnrichedPost] = []
    for post in await store.scan(Post):
        if not post.post_id:
            logger.warning("Skipped processing a post due to missing post id")
            continue
        user = await store.load(User, post.user_id)
        enriched.append(await _enrich(db, post, user))

    await cache.set(POSTS_LIST_KEY, [p.model_dump() for p in enriched], ttl=settings.CACHE_TTL_LIST)
    return enriched


async def get_post_by_id(db: AsyncSession, post_id: str) -> EnrichedPost | None:
    """
    Return the enriched post *post_id*, or None when it does not exist.

    Raises UserNotFoundError when the post's author is missing.
    """
    cache_key = POST_DETAIL_KEY.format(post_id=post_id)
    cached = await cache.get(cache_key)
    if cached is not None:
        return EnrichedPost.model_validate(cached)

    store = DocumentStore(db)
    post = await store.load(Post, post_id)
    if post is None or not post.post_id:
        return None

    user = await store.load(User, post.user_id)
    if user is None:
        raise UserNotFoundError(post.user_id)

    result = await _enrich(db, post, user)
    await cache.set(cache_key, result.model_dump(), ttl=settings.CACHE_TTL_DETAIL)
    return result


async def get_posts_by_user_id(db: AsyncSession, user_id: str) -> list[EnrichedPost]:
    """
    Return the enriched posts owned by *user_id*.

    If the author of any post cannot be found the whole batch is
    abandoned and an empty list returned.
    """
    cache_key = POSTS_BY_USER_KEY.format(user_id=user_id)
    cached = await _cached_feed(cache_key)
    if cached is not None:
        return cached

    store = DocumentStore(db)
    enriched: list[EnrichedPost] = []
    for post in await store.scan(Post, Post.user_id == user_id):
        if not post.post_id:
            logger.warning("Skipped processing a post due to missing post id")
            continue
        user = await store.load(User, post.user_id)
        if user is None:
            logger.warning("User with ID %s not found; discarding their posts", post.user_id)
            return []
        enriched.append(await _enrich(db, post, user))

    await cache.set(cache_key, [p.model_dump() for p in enriched], ttl=settings.CACHE_TTL_LIST)
    return enriched


async def delete_post(
    db: AsyncSession,
    blobs: BlobStore,
    post_id: str,
    requester_id: str,
) -> None:
    """
    Delete post *post_id* and its media on behalf of *requester_id*.

    Raises PostNotFoundError, UnauthorizedError when the requester is not
    the owner, or BlobStoreError when the media cannot be removed; in
    every one of those cases the post record is left untouched.
    """
    store = DocumentStore(db)
    post = await store.load(Post, post_id)
    if post is None:
        raise PostNotFoundError(post_id)

    if post.user_id != requester_id:
        logger.warning("User %s tried to delete post %s owned by %s", requester_id, post_id, post.user_id)
        raise UnauthorizedError("You can only delete your own posts")

    try:
        await blobs.delete(post_id)
    except BlobStoreError:
        logger.error("Media for post %s could not be deleted; post kept", post_id)
        raise

    await store.delete(Post, post_id)
    await cache.invalidate_posts(post_id, db=db)
    logger.info("Deleted post %s", post_id)


async def edit_post(db: AsyncSession, post_id: str, data: PostUpdate) -> PostResponse:
    """
    Update caption, location and posted date of *post_id*.

    ``data.user_id`` identifies the requester and must match the owner.
    The post id and owner never change.  An omitted ``posted_date``
    keeps the stored one.
    """
    store = DocumentStore(db)
    post = await store.load(Post, post_id)
    if post is None:
        raise PostNotFoundError(post_id)

    if post.user_id != data.user_id:
        raise UnauthorizedError("You can only edit your own posts")

    post.post_caption = data.post_caption
    post.location = data.location
    if data.posted_date is not None:
        post.posted_date = data.posted_date
    await store.save(post)

    await cache.invalidate_posts(post_id, db=db)
    return PostResponse.model_validate(post)
