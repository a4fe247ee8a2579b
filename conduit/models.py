"""
Persisted schema.

Tables are declared with SQLAlchemy Core so Alembic and the test suite can
create them; all reads and writes go through hand-written SQL in
``conduit.repositories``.  Constraint names follow PostgreSQL's defaults
because the repositories key duplicate handling on them.
"""
from __future__ import annotations

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)

metadata = MetaData()

# ---------------------------------------------------------------------------
# users
# ---------------------------------------------------------------------------
users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(100), nullable=False),
    Column("email", String(255), nullable=False),
    Column("password", String(255), nullable=False),
    Column("bio", Text, nullable=True),
    Column("image", String(500), nullable=True),
    UniqueConstraint("username", name="users_username_key"),
    UniqueConstraint("email", name="users_email_key"),
)


# ---------------------------------------------------------------------------
# articles
# ---------------------------------------------------------------------------
articles = Table(
    "articles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("slug", String(350), nullable=False),
    Column("title", String(300), nullable=False),
    Column("description", Text, nullable=False),
    Column("body", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column("author_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    UniqueConstraint("slug", name="articles_slug_key"),
    # Author's articles sorted by date (profile page, feed)
    Index("ix_articles_author_id_created_at", "author_id", "created_at"),
)


# ---------------------------------------------------------------------------
# tags and the articles <-> tags join table
# ---------------------------------------------------------------------------
tags = Table(
    "tags",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    UniqueConstraint("name", name="tags_name_key"),
)

articles_tags = Table(
    "articles_tags",
    metadata,
    Column("article_id", Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False),
    PrimaryKeyConstraint("article_id", "tag_id", name="articles_tags_pkey"),
)


# ---------------------------------------------------------------------------
# comments
# ---------------------------------------------------------------------------
comments = Table(
    "comments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("body", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column("author_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("article_id", Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False),
    Index("ix_comments_article_id", "article_id"),
)


# ---------------------------------------------------------------------------
# favourites and follows
# ---------------------------------------------------------------------------
favourite_articles = Table(
    "favourite_articles",
    metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("article_id", Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False),
    PrimaryKeyConstraint("user_id", "article_id", name="favourite_articles_pkey"),
)

followers = Table(
    "followers",
    metadata,
    # user_id is the followee
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("follower_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    PrimaryKeyConstraint("user_id", "follower_id", name="followers_pkey"),
)
