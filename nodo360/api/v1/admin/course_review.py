import uuid

from fastapi import APIRouter, Depends

from nodo360.core.deps import ADMIN, AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.schemas.admin.course_review import CourseReviewSchema
from nodo360.services.admin.course_review import CourseReviewService

router = APIRouter(
    prefix="/admin/courses",
    tags=["ADMIN COURSE REVIEW"],
    dependencies=[Depends(RateLimit("api"))],
)


@router.get("/pending")
async def get_pending_courses(
    service: CourseReviewService = Depends(CourseReviewService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_role([ADMIN, "mentor"])
    return await service.get_pending_courses_async()


@router.post("/{course_id}/review")
async def review_course(
    course_id: uuid.UUID,
    schema: CourseReviewSchema,
    service: CourseReviewService = Depends(CourseReviewService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    reviewer = await authorization.require_role([ADMIN, "mentor"])
    return await service.review_course_async(course_id, schema, reviewer)
