import uuid

from fastapi import APIRouter, Depends, Query

from nodo360.core.deps import AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.schemas.user.learning import CompleteLessonSchema, NextLessonSchema
from nodo360.services.user.learning import LearningService

router = APIRouter(
    tags=["User Learning"],
    dependencies=[Depends(RateLimit("api"))],
)


@router.get("/lessons/{lesson_id}/access")
async def get_lesson_access(
    lesson_id: uuid.UUID,
    service: LearningService = Depends(LearningService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.get_lesson_access_async(lesson_id, user)


@router.post("/lessons/complete")
async def complete_lesson(
    schema: CompleteLessonSchema,
    service: LearningService = Depends(LearningService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.complete_lesson_async(schema, user)


@router.post("/learning/next-lesson")
async def next_lesson(
    schema: NextLessonSchema,
    service: LearningService = Depends(LearningService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.next_lesson_async(schema, user)


@router.get("/continue")
async def continue_course(
    course_slug: str | None = Query(None, alias="courseSlug"),
    format: str | None = Query(None),
    service: LearningService = Depends(LearningService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user_if_any()
    return await service.continue_async(course_slug, format == "json", user)
