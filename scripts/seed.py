"""Database seeder for local development: users, posts, comments and likes.

No media is uploaded; seeded posts point at the bucket URL their id
would have if they had been created through the API.
"""
import asyncio
import argparse
import random
import time
import uuid
from datetime import datetime, timezone, timedelta

from pixshare.blob_store import public_url
from pixshare.config import settings
from pixshare.database import engine, async_session, Base
from pixshare.models import User, Post

LOCATIONS = ["Lisbon", "Kyoto", "Reykjavik", "Cape Town", "Montreal", "Oaxaca",
             "Tromso", "Hanoi", "Valparaiso", "Tbilisi", None]

CAPTIONS = ["Golden hour", "Street food heaven", "Morning hike", "City lights",
            "Lost in the market", "Weekend escape", "Rainy day vibes"]


async def seed(small: bool = False):
    num_users = 10 if small else 50
    num_posts = 100 if small else 5000
    max_comments = 3 if small else 10
    max_likes = 5 if small else 40

    print(f"Seeding: {num_users} users, {num_posts} posts")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        users = []
        for i in range(num_users):
            user = User(
                user_id=str(uuid.uuid4()),
                full_name=f"User {i}",
                username=f"user_{i:04d}",
            )
            session.add(user)
            users.append(user)
        await session.flush()
        print(f"  Created {len(users)} users")

        batch_size = 500
        total_comments = 0
        for batch_start in range(0, num_posts, batch_size):
            batch_end = min(batch_start + batch_size, num_posts)
            for i in range(batch_start, batch_end):
                post_id = str(uuid.uuid4())
                author = random.choice(users)
                commenters = random.sample(users, random.randint(0, max_comments))
                comments = [
                    {
                        "comment_id": str(uuid.uuid4()),
                        "user_id": c.user_id,
                        "full_name": c.full_name,
                        "content": f"Nice shot #{i}!",
                    }
                    for c in commenters
                ]
                likes = [{"user_id": u.user_id} for u in random.sample(users, random.randint(0, min(max_likes, num_users)))]
                total_comments += len(comments)
                session.add(Post(
                    post_id=post_id,
                    user_id=author.user_id,
                    post_caption=random.choice(CAPTIONS),
                    location=random.choice(LOCATIONS),
                    posted_date=datetime.now(timezone.utc) - timedelta(days=random.randint(0, 365)),
                    media_url=public_url(settings.S3_BUCKET_NAME, post_id),
                    comments=comments,
                    likes=likes,
                ))
            await session.flush()
            print(f"  Posts: {batch_end}/{num_posts}")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"Done: {num_posts} posts, {total_comments} comments in {elapsed:.1f}s")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the Pixshare database")
    parser.add_argument("--small", action="store_true", help="Seed a small dataset")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))
