import uuid

from fastapi import APIRouter, Depends, Query

from nodo360.core.deps import AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.schemas.user.messages import CreateReportSchema, SendMessageSchema
from nodo360.services.user.messages import MessageService

router = APIRouter(
    prefix="/messages",
    tags=["User Messages"],
    dependencies=[Depends(RateLimit("api"))],
)


# /report antes que /{conversation_id}
@router.get("/report")
async def get_my_reports(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: MessageService = Depends(MessageService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.get_my_reports_async(user, limit, offset)


@router.post("/report", dependencies=[Depends(RateLimit("strict"))])
async def create_report(
    schema: CreateReportSchema,
    service: MessageService = Depends(MessageService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.create_report_async(schema, user)


@router.get("/{conversation_id}")
async def get_messages(
    conversation_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: MessageService = Depends(MessageService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.get_messages_async(conversation_id, user, limit, offset)


@router.post("/{conversation_id}")
async def send_message(
    conversation_id: uuid.UUID,
    schema: SendMessageSchema,
    service: MessageService = Depends(MessageService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.send_message_async(conversation_id, schema, user)
