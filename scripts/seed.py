"""Populate the database with users, follows, articles, tags, favourites and comments."""
import argparse
import asyncio
import random
import time

from conduit.database import engine, session
from conduit.db import Session
from conduit.models import metadata
from conduit.repositories import articles as articles_repo
from conduit.repositories import comments as comments_repo
from conduit.repositories import profiles as profiles_repo
from conduit.repositories import tags as tags_repo
from conduit.repositories import users as users_repo
from conduit.security import hash_password

TAGS = ["python", "fastapi", "postgresql", "redis", "docker", "kubernetes",
        "react", "typescript", "aws", "devops", "testing", "performance",
        "security", "microservices", "graphql", "rest-api"]

PASSWORD = "password123"


async def seed(small: bool = False):
    num_users = 10 if small else 50
    num_articles = 100 if small else 2000
    num_comments_per_article = 2 if small else 5

    print(f"Seeding: {num_users} users, {num_articles} articles, ~{num_articles * num_comments_per_article} comments")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    # One hash for everybody; bcrypt is deliberately slow.
    password_hash = hash_password(PASSWORD)

    async def create_users(tx: Session):
        users = []
        for i in range(num_users):
            users.append(await users_repo.create_user(
                tx,
                username=f"user_{i:04d}",
                email=f"user_{i:04d}@mail.com",
                password_hash=password_hash,
            ))
        for user in users:
            for followee in random.sample(users, k=min(3, len(users))):
                if followee.id != user.id:
                    await profiles_repo.follow(tx, followee.id, user.id)
        return users

    users = await session.do_transactionally(create_users)
    print(f"  Created {len(users)} users")

    total_comments = 0
    batch_size = 100
    for batch_start in range(0, num_articles, batch_size):
        batch_end = min(batch_start + batch_size, num_articles)

        # Each batch commits on its own so a failure only loses that batch.
        async def create_batch(tx: Session) -> int:
            comments = 0
            for i in range(batch_start, batch_end):
                topic = random.choice(TAGS)
                article = await articles_repo.create_article(
                    tx,
                    slug=f"article-{i}-optimize-{topic}",
                    title=f"Article {i}: How to optimize {topic} applications",
                    description=f"A guide to optimizing {topic} applications for production.",
                    body=f"This is the full content of article {i}. " * 20,
                    author_id=random.choice(users).id,
                )
                tags = await tags_repo.create_tags(tx, random.sample(TAGS, k=random.randint(1, 4)))
                await tags_repo.link_tags(tx, article.id, [tag.id for tag in tags])
                for fan in random.sample(users, k=random.randint(0, 3)):
                    await articles_repo.favorite_article(tx, article.id, fan.id)
                for _ in range(random.randint(1, num_comments_per_article)):
                    await comments_repo.create_comment(
                        tx,
                        body="Great article! Very helpful for understanding the topic.",
                        author_id=random.choice(users).id,
                        article_id=article.id,
                    )
                    comments += 1
            return comments

        total_comments += await session.do_transactionally(create_batch)
        print(f"  Batch {batch_start}-{batch_end}: articles created")

    await engine.dispose()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users} (password: {PASSWORD})")
    print(f"  Articles: {num_articles}")
    print(f"  Comments: ~{total_comments}")
    print(f"  Tags: {len(TAGS)}")


def main():
    parser = argparse.ArgumentParser(description="Seed the Conduit database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 articles)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
