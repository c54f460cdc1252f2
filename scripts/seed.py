"""Database seeder: category tree, staff accounts and sample articles."""
import argparse
import asyncio
import random
import time
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from newsroom.config import settings
from newsroom.database import Base, Database
from newsroom.models import Article, ArticleStatus, Category, Role, Tag, User
from newsroom.security import hash_password
from newsroom.services.slugs import slugify

CATEGORIES = {
    "General": [],
    "Politics": ["National", "World"],
    "Science and Technology": ["Science", "Technology"],
    "Sports and Entertainment": ["Sports", "Entertainment"],
    "Business": ["Markets", "Startups"],
}

STAFF = [
    ("Site Admin", "admin@example.com", Role.ADMIN),
    ("Desk Editor", "editor@example.com", Role.EDITOR),
    ("Field Reporter", "reporter@example.com", Role.REPORTER),
]

TAGS = ["breaking", "analysis", "opinion", "interview", "explainer", "live", "feature"]


async def _get_or_create_category(session, name: str, parent: Category | None = None) -> Category:
    slug = slugify(name)
    result = await session.execute(select(Category).where(Category.slug == slug))
    category = result.scalar_one_or_none()
    if category is None:
        category = Category(
            name=name,
            slug=slug,
            description=f"{name} coverage",
            parent_id=parent.id if parent else None,
        )
        session.add(category)
        await session.flush()
    return category


async def _get_or_create_user(session, name: str, email: str, role: Role, password: str) -> User:
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None:
        user = User(name=name, email=email, role=role, password_hash=hash_password(password))
        session.add(user)
        await session.flush()
    return user


async def seed(num_articles: int, password: str, reset: bool = False) -> None:
    start = time.perf_counter()
    database = Database(settings.DATABASE_URL)
    database.open()

    try:
        async with database.engine.begin() as conn:
            if reset:
                await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)

        async with database.session() as session:
            leaves = []
            for parent_name, child_names in CATEGORIES.items():
                parent = await _get_or_create_category(session, parent_name)
                leaves.append(parent)
                for child_name in child_names:
                    leaves.append(await _get_or_create_category(session, child_name, parent))
            print(f"  Categories: {len(leaves)}")

            authors = [
                await _get_or_create_user(session, name, email, role, password)
                for name, email, role in STAFF
            ]
            print(f"  Staff users: {len(authors)} (password: {password})")

            tags = []
            for name in TAGS:
                result = await session.execute(select(Tag).where(Tag.name == name))
                tag = result.scalar_one_or_none()
                if tag is None:
                    tag = Tag(name=name)
                    session.add(tag)
                tags.append(tag)
            await session.flush()

            stamp = int(time.time())
            for i in range(num_articles):
                category = random.choice(leaves)
                title = f"{category.name} roundup {i + 1}: what changed this week"
                content = f"This is the body of sample article {i + 1}. " * 15
                created = datetime.now(timezone.utc) - timedelta(days=random.randint(0, 60))
                article = Article(
                    title=title,
                    slug=f"{slugify(title)}-{stamp}",
                    content=content,
                    excerpt=content[:200],
                    meta_title=title[:60],
                    meta_description=content[:160],
                    status=ArticleStatus.PUBLISHED if random.random() > 0.2 else ArticleStatus.DRAFT,
                    author_id=random.choice(authors).id,
                    category_id=category.id,
                    created_at=created,
                    updated_at=created,
                )
                article.tags.extend(random.sample(tags, k=random.randint(1, 3)))
                session.add(article)
            await session.flush()
            print(f"  Articles: {num_articles}")
    finally:
        await database.close()

    print(f"\nSeeding complete in {time.perf_counter() - start:.1f}s")


def main():
    parser = argparse.ArgumentParser(description="Seed the newsroom database")
    parser.add_argument("--articles", type=int, default=20, help="Number of sample articles")
    parser.add_argument("--password", default="changeme123", help="Password for the staff accounts")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables first")
    args = parser.parse_args()
    asyncio.run(seed(args.articles, args.password, reset=args.reset))


if __name__ == "__main__":
    main()
