from fastapi import APIRouter, Depends

from nodo360.core.deps import ADMIN, AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.schemas.admin.users import SetBetaBulkSchema, SetBetaSchema
from nodo360.services.admin.user import UserService

router = APIRouter(
    prefix="/admin/users",
    tags=["ADMIN USER"],
    dependencies=[Depends(RateLimit("api"))],
)


@router.get("/beta")
async def get_beta_stats(
    authorization: AuthorizationService = Depends(AuthorizationService),
    user_service: UserService = Depends(UserService),
):
    await authorization.require_role([ADMIN])
    return await user_service.get_beta_stats_async()


@router.post("/beta")
async def set_beta(
    schema: SetBetaSchema,
    authorization: AuthorizationService = Depends(AuthorizationService),
    user_service: UserService = Depends(UserService),
):
    admin = await authorization.require_role([ADMIN])
    return await user_service.set_beta_async(schema, admin)


@router.patch("/beta")
async def set_beta_bulk(
    schema: SetBetaBulkSchema,
    authorization: AuthorizationService = Depends(AuthorizationService),
    user_service: UserService = Depends(UserService),
):
    admin = await authorization.require_role([ADMIN])
    return await user_service.set_beta_bulk_async(schema, admin)
