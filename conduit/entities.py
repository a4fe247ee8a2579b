"""Plain records returned by the repositories."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class User:
    id: int
    username: str
    email: str
    password: str = field(default="", repr=False)
    bio: str | None = None
    image: str | None = None


@dataclass
class Profile:
    id: int
    username: str
    bio: str | None = None
    image: str | None = None
    following: bool = False


@dataclass
class Tag:
    id: int
    name: str


@dataclass
class Article:
    id: int
    slug: str
    title: str
    description: str
    body: str
    created_at: datetime
    updated_at: datetime
    author_id: int


@dataclass
class Comment:
    id: int
    body: str
    created_at: datetime
    updated_at: datetime
    author_id: int
    article_id: int
