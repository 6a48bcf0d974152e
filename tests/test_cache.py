"""
Cache-aside tests over an in-process Redis (fakeredis).

Enriched reads are stored as JSON and rebuilt into ``EnrichedPost`` on
a hit, so a hit must look exactly like a fresh read.  Writes drop the
feeds immediately and again once the request's transaction commits.
"""
import io

import fakeredis
import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import Headers, UploadFile

from pixshare.cache import POST_DETAIL_KEY, POSTS_BY_USER_KEY, POSTS_LIST_KEY, cache
from pixshare.models import Post, User
from pixshare.schemas import UNKNOWN_USER, CommentCreate, PostCreate, UserCreate
from pixshare.services import comment_service, like_service, post_service, user_service


@pytest_asyncio.fixture
async def redis_cache(setup_db):
    """Point the cache singleton at a fresh fake Redis for one test."""
    fake = fakeredis.aioredis.FakeRedis(decode_responses=True)
    cache._redis = fake
    yield fake
    await fake.flushall()
    await fake.aclose()
    cache._redis = None


async def _create_user(db: AsyncSession, user_id: str, full_name: str, username: str) -> None:
    db.add(User(user_id=user_id, full_name=full_name, username=username))
    await db.flush()


async def _create_post(db: AsyncSession, blob_store, user_id: str = "u1", caption: str = "Sunset"):
    media = UploadFile(
        file=io.BytesIO(b"\xff\xd8\xff jpeg bytes"),
        filename="photo.jpg",
        headers=Headers({"content-type": "image/jpeg"}),
    )
    return await post_service.create_post(
        db, blob_store, PostCreate(user_id=user_id, post_caption=caption), media
    )


async def _rename_behind_cache(db: AsyncSession, post_id: str, caption: str) -> None:
    """Change a stored post without going through a service, so nothing is invalidated."""
    post = await db.get(Post, post_id)
    post.post_caption = caption
    await db.flush()


# ---------------------------------------------------------------------------
# Hits match fresh reads
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_all_posts_hit_matches_fresh_read(db_session: AsyncSession, blob_store, redis_cache):
    await _create_user(db_session, "u1", "Ada Lovelace", "ada")
    await _create_user(db_session, "u2", "Alan Turing", "alan")
    post = await _create_post(db_session, blob_store, caption="Sunset")
    await _create_post(db_session, blob_store, user_id="u2", caption="Harbour")
    await like_service.add_like(db_session, post.post_id, "u2")
    await comment_service.add_comment(db_session, post.post_id, CommentCreate(user_id="u2", comment="Wow"))

    fresh = await post_service.get_all_posts(db_session)
    assert await redis_cache.exists(POSTS_LIST_KEY)

    await _rename_behind_cache(db_session, post.post_id, "Changed")
    hit = await post_service.get_all_posts(db_session)

    assert hit == fresh
    assert "Changed" not in {p.post_caption for p in hit}
    assert all(p.posted_date.tzinfo is not None for p in hit)


@pytest.mark.asyncio
async def test_get_post_by_id_hit_matches_fresh_read(db_session: AsyncSession, blob_store, redis_cache):
    await _create_user(db_session, "u1", "Ada Lovelace", "ada")
    post = await _create_post(db_session, blob_store)
    await like_service.add_like(db_session, post.post_id, "u1")

    fresh = await post_service.get_post_by_id(db_session, post.post_id)
    assert await redis_cache.exists(POST_DETAIL_KEY.format(post_id=post.post_id))

    await _rename_behind_cache(db_session, post.post_id, "Changed")
    hit = await post_service.get_post_by_id(db_session, post.post_id)

    assert hit == fresh
    assert hit.post_caption == "Sunset"
    assert hit.likes_count == 1


@pytest.mark.asyncio
async def test_get_posts_by_user_id_hit_matches_fresh_read(db_session: AsyncSession, blob_store, redis_cache):
    await _create_user(db_session, "u1", "Ada Lovelace", "ada")
    await _create_user(db_session, "u2", "Alan Turing", "alan")
    post = await _create_post(db_session, blob_store, user_id="u1", caption="A1")
    await _create_post(db_session, blob_store, user_id="u2", caption="B1")

    fresh = await post_service.get_posts_by_user_id(db_session, "u1")
    assert await redis_cache.exists(POSTS_BY_USER_KEY.format(user_id="u1"))
    assert not await redis_cache.exists(POSTS_BY_USER_KEY.format(user_id="u2"))

    await _rename_behind_cache(db_session, post.post_id, "Changed")
    hit = await post_service.get_posts_by_user_id(db_session, "u1")

    assert hit == fresh
    assert [p.post_caption for p in hit] == ["A1"]


@pytest.mark.asyncio
async def test_missing_author_placeholder_survives_cache(db_session: AsyncSession, blob_store, redis_cache):
    await _create_post(db_session, blob_store, user_id="ghost", caption="Orphan")

    await post_service.get_all_posts(db_session)
    hit = await post_service.get_all_posts(db_session)

    assert hit[0].full_name is None
    assert hit[0].model_dump(mode="json")["full_name"] == UNKNOWN_USER
    assert hit[0].model_dump(mode="json")["username"] == UNKNOWN_USER


# ---------------------------------------------------------------------------
# Invalidation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_like_and_comment_visible_on_next_read(db_session: AsyncSession, blob_store, redis_cache):
    await _create_user(db_session, "u1", "Ada Lovelace", "ada")
    await _create_user(db_session, "u2", "Alan Turing", "alan")
    post = await _create_post(db_session, blob_store)

    before = await post_service.get_post_by_id(db_session, post.post_id)
    await post_service.get_all_posts(db_session)
    assert before.likes_count == 0

    await like_service.add_like(db_session, post.post_id, "u2")
    await comment_service.add_comment(db_session, post.post_id, CommentCreate(user_id="u2", comment="Wow"))

    after = await post_service.get_post_by_id(db_session, post.post_id)
    assert after.likes_count == 1
    assert after.comments_count == 1
    assert after.comments[0].full_name == "Alan Turing"

    feed = await post_service.get_all_posts(db_session)
    assert feed[0].likes_count == 1
    assert feed[0].comments_count == 1


@pytest.mark.asyncio
async def test_create_user_refreshes_author_in_feeds(db_session: AsyncSession, blob_store, redis_cache):
    await _create_post(db_session, blob_store, user_id="late", caption="Early bird")
    feed = await post_service.get_all_posts(db_session)
    assert feed[0].full_name is None

    await user_service.create_user(db_session, UserCreate(user_id="late", full_name="Grace Hopper", username="grace"))

    feed = await post_service.get_all_posts(db_session)
    assert feed[0].full_name == "Grace Hopper"


@pytest.mark.asyncio
async def test_commit_repeats_invalidation(db_session: AsyncSession, blob_store, redis_cache):
    await _create_user(db_session, "u1", "Ada Lovelace", "ada")
    post = await _create_post(db_session, blob_store)
    await like_service.add_like(db_session, post.post_id, "u1")

    # A read served between the write and the commit re-caches old state.
    detail_key = POST_DETAIL_KEY.format(post_id=post.post_id)
    await cache.set(detail_key, {"likes_count": 0})
    await cache.set(POSTS_LIST_KEY, [])

    await db_session.commit()
    await cache.invalidate_committed(db_session)

    assert not await redis_cache.exists(detail_key)
    assert not await redis_cache.exists(POSTS_LIST_KEY)
    assert (await post_service.get_post_by_id(db_session, post.post_id)).likes_count == 1


@pytest.mark.asyncio
async def test_rollback_forgets_pending_invalidation(db_session: AsyncSession, blob_store, redis_cache):
    await _create_user(db_session, "u1", "Ada Lovelace", "ada")
    post = await _create_post(db_session, blob_store)
    await like_service.add_like(db_session, post.post_id, "u1")

    await db_session.rollback()
    cache.discard_pending(db_session)
    await cache.set(POSTS_LIST_KEY, [])
    await cache.invalidate_committed(db_session)

    assert await redis_cache.exists(POSTS_LIST_KEY)
    assert await db_session.get(User, "u1") is None


@pytest.mark.asyncio
async def test_like_over_http_refreshes_cached_detail(async_client: AsyncClient, redis_cache):
    for user_id, name in (("u1", "ada"), ("u2", "alan")):
        resp = await async_client.post("/api/v1/users", json={
            "user_id": user_id, "full_name": name.title(), "username": name,
        })
        assert resp.status_code == 201
    resp = await async_client.post(
        "/api/v1/posts",
        data={"user_id": "u1", "post_caption": "Sunset"},
        files={"media": ("photo.jpg", b"\xff\xd8\xff jpeg bytes", "image/jpeg")},
    )
    post_id = resp.json()["post_id"]

    resp = await async_client.get(f"/api/v1/posts/{post_id}")
    assert resp.json()["likes_count"] == 0
    assert await redis_cache.exists(POST_DETAIL_KEY.format(post_id=post_id))

    resp = await async_client.post(f"/api/v1/posts/{post_id}/likes", json={"user_id": "u2"})
    assert resp.status_code == 201
    assert not await redis_cache.exists(POST_DETAIL_KEY.format(post_id=post_id))

    resp = await async_client.get(f"/api/v1/posts/{post_id}")
    assert resp.json()["likes_count"] == 1
    assert resp.json()["full_name"] == "Ada"
