import uuid

from fastapi import APIRouter, Depends, Query, status

from nodo360.core.deps import ADMIN, AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.schemas.admin.entitlements import (
    GrantEntitlementSchema,
    RevokeEntitlementSchema,
)
from nodo360.services.shares.entitlements import EntitlementService

router = APIRouter(
    prefix="/admin/entitlements",
    tags=["ADMIN ENTITLEMENTS"],
    dependencies=[Depends(RateLimit("api"))],
)


@router.get("")
async def list_entitlements(
    user_id: uuid.UUID | None = None,
    type: str | None = None,
    page: int = Query(1, ge=1),
    service: EntitlementService = Depends(EntitlementService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_role([ADMIN])
    return await service.list_entitlements_async(user_id=user_id, type=type, page=page)


@router.post("", status_code=status.HTTP_201_CREATED)
async def grant_entitlement(
    schema: GrantEntitlementSchema,
    service: EntitlementService = Depends(EntitlementService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    admin = await authorization.require_role([ADMIN])
    return await service.grant_entitlement_async(schema, admin)


@router.delete("")
async def revoke_entitlement(
    schema: RevokeEntitlementSchema,
    service: EntitlementService = Depends(EntitlementService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_role([ADMIN])
    return await service.revoke_entitlement_async(schema.entitlement_id)
