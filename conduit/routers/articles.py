from fastapi import APIRouter, Depends, Query
from conduit.database import get_session
from conduit.db import Session
from conduit.dependencies import PaginationParams, get_current_user, get_optional_user
from conduit.entities import User
from conduit.schemas import NewArticleRequest, NewCommentRequest, UpdateArticleRequest
from conduit.services import article_service, comment_service

router = APIRouter(prefix="/api/articles", tags=["articles"])

@router.get("")
async def list_articles(
    tag: str | None = Query(None),
    author: str | None = Query(None),
    favorited: str | None = Query(None),
    pagination: PaginationParams = Depends(),
    viewer: User | None = Depends(get_optional_user),
    session: Session = Depends(get_session),
):
    return await article_service.list_articles(
        session,
        viewer,
        tag=tag,
        author=author,
        favorited=favorited,
        limit=pagination.limit,
        offset=pagination.offset,
    )

# Declared before "/{slug}" so "feed" is not taken for a slug.
@router.get("/feed")
async def feed_articles(
    pagination: PaginationParams = Depends(),
    viewer: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return await article_service.feed_articles(
        session, viewer, limit=pagination.limit, offset=pagination.offset
    )

@router.post("", status_code=201)
async def create_article(
    data: NewArticleRequest,
    author: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return await article_service.create_article(session, author, data.article)

@router.get("/{slug}")
async def get_article(
    slug: str,
    viewer: User | None = Depends(get_optional_user),
    session: Session = Depends(get_session),
):
    return await article_service.get_article(session, slug, viewer)

@router.put("/{slug}")
async def update_article(
    slug: str,
    data: UpdateArticleRequest,
    editor: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return await article_service.update_article(session, slug, editor, data.article)

@router.delete("/{slug}", status_code=204)
async def delete_article(
    slug: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    await article_service.delete_article(session, slug, user)

@router.post("/{slug}/favorite")
async def favorite_article(
    slug: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return await article_service.favorite_article(session, slug, user)

@router.delete("/{slug}/favorite")
async def unfavorite_article(
    slug: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return await article_service.unfavorite_article(session, slug, user)

@router.get("/{slug}/comments")
async def list_comments(
    slug: str,
    viewer: User | None = Depends(get_optional_user),
    session: Session = Depends(get_session),
):
    return await comment_service.list_comments(session, slug, viewer)

@router.post("/{slug}/comments", status_code=201)
async def add_comment(
    slug: str,
    data: NewCommentRequest,
    author: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return await comment_service.add_comment(session, slug, author, data.comment)

@router.delete("/{slug}/comments/{comment_id}", status_code=204)
async def delete_comment(
    slug: str,
    comment_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    await comment_service.delete_comment(session, slug, comment_id, user)
