from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from nodo360.core.deps import ADMIN, AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.services.admin.system_settings import SystemSettingsService

router = APIRouter(
    prefix="/admin/settings",
    tags=["ADMIN SETTINGS"],
    dependencies=[Depends(RateLimit("api"))],
)


@router.get("/{key}")
async def get_setting(
    key: str,
    service: SystemSettingsService = Depends(SystemSettingsService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_role([ADMIN])
    return await service.get_setting_async(key)


@router.put("/{key}")
async def update_setting(
    key: str,
    body: Dict[str, Any] = Body(...),
    service: SystemSettingsService = Depends(SystemSettingsService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.require_role([ADMIN])
    return await service.update_setting_async(key, body)
