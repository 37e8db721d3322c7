from fastapi import APIRouter, Depends, status

from nodo360.core.deps import AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.schemas.shares.mentor import MentorApplySchema
from nodo360.services.shares.mentor import MentorService

router = APIRouter(
    prefix="/mentor",
    tags=["Mentor"],
    dependencies=[Depends(RateLimit("api"))],
)


@router.get("/eligibility")
async def get_eligibility(
    service: MentorService = Depends(MentorService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.get_eligibility_async(user)


@router.post(
    "/apply",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit("strict"))],
)
async def apply(
    schema: MentorApplySchema,
    service: MentorService = Depends(MentorService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.apply_async(schema, user)


@router.get("/applications/me")
async def get_my_applications(
    service: MentorService = Depends(MentorService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.get_my_applications_async(user)
