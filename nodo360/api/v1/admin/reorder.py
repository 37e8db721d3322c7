from fastapi import APIRouter, Depends

from nodo360.core.deps import INSTRUCTOR_ROLES, AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.schemas.admin.reorder import ReorderLessonSchema, ReorderModuleSchema
from nodo360.services.admin.reorder import ReorderService

router = APIRouter(
    prefix="/admin",
    tags=["ADMIN REORDER"],
    dependencies=[Depends(RateLimit("api"))],
)


@router.post("/lessons/reorder")
async def reorder_lesson(
    schema: ReorderLessonSchema,
    service: ReorderService = Depends(ReorderService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.require_role(INSTRUCTOR_ROLES)
    return await service.reorder_lesson_async(schema, user)


@router.post("/modules/reorder")
async def reorder_module(
    schema: ReorderModuleSchema,
    service: ReorderService = Depends(ReorderService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.require_role(INSTRUCTOR_ROLES)
    return await service.reorder_module_async(schema, user)
