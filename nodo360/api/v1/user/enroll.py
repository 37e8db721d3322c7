from fastapi import APIRouter, Depends, Query, Request, Response, status

from nodo360.core.deps import AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.schemas.user.enroll import EnrollSchema
from nodo360.services.user.enroll import EnrollService

router = APIRouter(
    prefix="/enroll",
    tags=["User Enroll"],
    dependencies=[Depends(RateLimit("api"))],
)


@router.get("")
async def enroll_redirect(
    request: Request,
    course_id: str | None = Query(None, alias="courseId"),
    redirect: str | None = Query(None),
    format: str | None = Query(None),
    service: EnrollService = Depends(EnrollService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user_if_any()
    return await service.enroll_redirect_async(
        course_id, redirect, format == "json", user, request
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def enroll(
    schema: EnrollSchema,
    request: Request,
    response: Response,
    service: EnrollService = Depends(EnrollService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    payload, created = await service.enroll_async(schema.course_id, user, request)
    if not created:
        response.status_code = status.HTTP_200_OK
    return payload


@router.delete("")
async def unenroll(
    schema: EnrollSchema,
    service: EnrollService = Depends(EnrollService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.unenroll_async(schema.course_id, user)
