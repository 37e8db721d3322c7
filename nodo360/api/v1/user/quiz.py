import uuid

from fastapi import APIRouter, Depends

from nodo360.core.deps import AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.schemas.user.quiz import SubmitQuizSchema
from nodo360.services.user.quiz import QuizService

router = APIRouter(
    prefix="/quiz",
    tags=["User Quiz"],
    dependencies=[Depends(RateLimit("api"))],
)


@router.get("/modules/{module_id}")
async def get_quiz(
    module_id: uuid.UUID,
    service: QuizService = Depends(QuizService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.get_quiz_async(module_id, user)


@router.post("/submit")
async def submit_quiz(
    schema: SubmitQuizSchema,
    service: QuizService = Depends(QuizService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.submit_quiz_async(schema, user)
