import uuid

from fastapi import APIRouter, Depends, Query

from nodo360.core.deps import AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.schemas.user.bookmarks import CreateBookmarkSchema
from nodo360.services.user.bookmarks import BookmarkService

router = APIRouter(
    prefix="/bookmarks",
    tags=["User Bookmarks"],
    dependencies=[Depends(RateLimit("api"))],
)


@router.get("")
async def get_bookmarks(
    lesson_id: uuid.UUID | None = Query(None),
    service: BookmarkService = Depends(BookmarkService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    if lesson_id:
        return await service.is_bookmarked_async(lesson_id, user)
    return await service.get_bookmarks_async(user)


@router.post("")
async def create_bookmark(
    schema: CreateBookmarkSchema,
    service: BookmarkService = Depends(BookmarkService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.upsert_bookmark_async(schema, user)


@router.delete("")
async def delete_bookmark(
    lesson_id: uuid.UUID = Query(...),
    service: BookmarkService = Depends(BookmarkService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.delete_bookmark_async(lesson_id, user)
