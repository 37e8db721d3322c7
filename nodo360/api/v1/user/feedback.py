from fastapi import APIRouter, Depends

from nodo360.core.deps import AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.schemas.user.feedback import FeedbackSchema
from nodo360.services.user.feedback import FeedbackService

router = APIRouter(
    prefix="/feedback",
    tags=["User Feedback"],
    dependencies=[Depends(RateLimit("strict"))],
)


@router.post("")
async def create_feedback(
    schema: FeedbackSchema,
    service: FeedbackService = Depends(FeedbackService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.create_feedback_async(schema, user)
