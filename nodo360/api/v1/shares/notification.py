from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi_pagination import Page, Params

from nodo360.core.deps import AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.schemas.shares.notification import NotificationOut
from nodo360.services.shares.notification import NotificationService

router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"],
    dependencies=[Depends(RateLimit("api"))],
)


@router.get("", response_model=Page[NotificationOut])
async def get_notifications(
    params: Params = Depends(),
    type_: str | None = None,
    is_read: bool | None = None,
    service: NotificationService = Depends(NotificationService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization_service.get_current_user()
    return await service.get_notifications_async(
        user.id, params, type_=type_, is_read=is_read
    )


@router.get("/unread-count")
async def get_unread_count(
    service: NotificationService = Depends(NotificationService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization_service.get_current_user()
    return await service.get_unread_count_async(user.id)


@router.patch("/{notification_id}/read")
async def mark_notification_read(
    notification_id: UUID,
    service: NotificationService = Depends(NotificationService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization_service.get_current_user()
    return await service.mark_as_read(notification_id, user.id)


@router.post("/read-all")
async def read_all_notifications(
    service: NotificationService = Depends(NotificationService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization_service.get_current_user()
    return await service.mark_all_as_read(user.id)
