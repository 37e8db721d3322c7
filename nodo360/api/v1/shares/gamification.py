from fastapi import APIRouter, Depends

from nodo360.core.deps import ADMIN, AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.schemas.shares.gamification import AdjustXpSchema
from nodo360.services.shares.gamification import GamificationService

router = APIRouter(tags=["Gamification"], dependencies=[Depends(RateLimit("api"))])


@router.get("/gamification/stats")
async def get_gamification_stats(
    service: GamificationService = Depends(GamificationService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.get_stats_async(user)


@router.post("/admin/gamification/adjust")
async def adjust_xp(
    schema: AdjustXpSchema,
    service: GamificationService = Depends(GamificationService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    admin = await authorization.require_role([ADMIN])
    return await service.adjust_xp_async(schema, admin)
