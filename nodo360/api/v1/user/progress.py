import uuid

from fastapi import APIRouter, Depends

from nodo360.core.deps import AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.services.user.progress import CourseProgressService

router = APIRouter(
    prefix="/progress",
    tags=["User Progress"],
    dependencies=[Depends(RateLimit("api"))],
)


@router.post("/courses/{course_id}/complete")
async def complete_course(
    course_id: uuid.UUID,
    service: CourseProgressService = Depends(CourseProgressService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.complete_course_async(course_id, user)
