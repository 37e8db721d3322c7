from fastapi import APIRouter, Depends

from nodo360.core.deps import ADMIN, AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.schemas.admin.announcements import AnnouncementSchema
from nodo360.services.admin.announcement import AnnouncementService

router = APIRouter(
    prefix="/admin/announcements",
    tags=["ADMIN ANNOUNCEMENTS"],
    dependencies=[Depends(RateLimit("strict"))],
)


@router.post("")
async def send_announcement(
    schema: AnnouncementSchema,
    authorization: AuthorizationService = Depends(AuthorizationService),
    service: AnnouncementService = Depends(AnnouncementService),
):
    admin = await authorization.require_role([ADMIN])
    return await service.send_announcement_async(schema, admin)
