"""
User service: create and read users.

Posts, comments and likes only ever read users; this module is the one
place users are written.  Username uniqueness is enforced by the
database; the router turns the resulting IntegrityError into a 409.
"""
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from pixshare.cache import cache
from pixshare.models import User
from pixshare.schemas import UserCreate, UserResponse
from pixshare.store import DocumentStore


async def get_users(db: AsyncSession) -> list[UserResponse]:
    users = await DocumentStore(db).scan(User)
    users.sort(key=lambda u: u.username)
    return [UserResponse.model_validate(u) for u in users]


async def get_user(db: AsyncSession, user_id: str) -> UserResponse | None:
    """Return *user_id*, or None when the user does not exist."""
    user = await DocumentStore(db).load(User, user_id)
    if user is None:
        return None
    return UserResponse.model_validate(user)


async def create_user(db: AsyncSession, data: UserCreate) -> UserResponse:
    """
    Create a user, generating an id when none is supplied.

    Feeds are invalidated because posts by this id may have been shown
    with a placeholder author until now.
    """
    user = User(
        user_id=data.user_id or str(uuid.uuid4()),
        full_name=data.full_name,
        username=data.username,
    )
    store = DocumentStore(db)
    await store.save(user)
    await db.refresh(user, ["created_at"])

    await cache.invalidate_posts(db=db)
    return UserResponse.model_validate(user)
