"""
Document store: key-value access to mapped entities over an
``AsyncSession``.

Services only ever load a whole document, change it, and save it back;
there are no partial updates and no cross-entity transactions.  The
session's transaction boundary is still owned by ``get_db``: ``save``
and ``delete`` flush, they never commit.

Every SQLAlchemy failure is re-raised as ``StoreError`` so callers deal
with a single error type regardless of the database driver.
"""
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pixshare.database import Base
from pixshare.errors import StoreError
from pixshare.middleware import count_store_call

T = TypeVar("T", bound=Base)


class DocumentStore:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def load(self, model: type[T], key: str) -> T | None:
        """Return the entity of type *model* with primary key *key*, or None."""
        count_store_call()
        if key is None:
            return None
        try:
            return await self.db.get(model, key)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to load {model.__name__} {key!r}: {exc}") from exc

    async def save(self, entity: Base) -> None:
        """Insert or update *entity* and flush it within the current transaction."""
        count_store_call()
        try:
            self.db.add(entity)
            await self.db.flush()
        except IntegrityError:
            # Left to the caller: a constraint violation is a client error.
            raise
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to save {type(entity).__name__}: {exc}") from exc

    async def delete(self, model: type[T], key: str) -> bool:
        """Delete the entity with primary key *key*.  Returns False if it was absent."""
        entity = await self.load(model, key)
        if entity is None:
            return False
        try:
            await self.db.delete(entity)
            await self.db.flush()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to delete {model.__name__} {key!r}: {exc}") from exc
        return True

    async def scan(self, model: type[T], *criteria: Any) -> list[T]:
        """Return every entity of type *model* matching all *criteria* (all of them if none)."""
        count_store_call()
        q = select(model)
        if criteria:
            q = q.where(*criteria)
        try:
            result = await self.db.execute(q)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to scan {model.__name__}: {exc}") from exc
        return list(result.scalars().all())
