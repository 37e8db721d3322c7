from fastapi import APIRouter, Depends, Request, status

from nodo360.core.deps import INSTRUCTOR_ROLES, AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.schemas.shares.referral import CreateReferralLinkSchema
from nodo360.services.shares.referral import ReferralService

router = APIRouter(prefix="/instructor/referral", tags=["Instructor Referral"])

# Redirección pública /r/{code}, montada fuera de /api/v1
public_router = APIRouter(tags=["Referral Redirect"])


@router.get("", dependencies=[Depends(RateLimit("api"))])
async def list_referral_links(
    service: ReferralService = Depends(ReferralService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.require_role(INSTRUCTOR_ROLES)
    return await service.list_links_async(user)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit("strict"))],
)
async def create_referral_link(
    schema: CreateReferralLinkSchema,
    service: ReferralService = Depends(ReferralService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.require_role(INSTRUCTOR_ROLES)
    return await service.create_link_async(schema, user)


@public_router.get("/r/{code}", dependencies=[Depends(RateLimit("public"))])
async def referral_redirect(
    code: str,
    request: Request,
    service: ReferralService = Depends(ReferralService),
):
    return await service.track_click_and_redirect(code, request)
