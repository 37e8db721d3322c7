import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from nodo360.core.deps import ADMIN, AuthorizationService
from nodo360.core.ratelimit import RateLimit
from nodo360.schemas.shares.governance import (
    AdminActionSchema,
    CreateProposalSchema,
    VoteSchema,
)
from nodo360.services.shares.governance import GovernanceService

router = APIRouter(
    prefix="/governance",
    tags=["Governance"],
    dependencies=[Depends(RateLimit("api"))],
)


@router.get("/categories")
async def get_categories(
    level: Optional[int] = Query(None, ge=1, le=2),
    service: GovernanceService = Depends(GovernanceService),
):
    return await service.get_categories_async(level)


@router.get("/stats")
async def get_stats(service: GovernanceService = Depends(GovernanceService)):
    return await service.get_stats_async()


@router.get("/proposals")
async def get_proposals(
    status_: Optional[List[str]] = Query(None, alias="status"),
    level: Optional[int] = Query(None, ge=1, le=2),
    category_id: Optional[uuid.UUID] = None,
    author_id: Optional[uuid.UUID] = None,
    limit: Optional[int] = Query(None, ge=1, le=100),
    service: GovernanceService = Depends(GovernanceService),
):
    return await service.get_proposals_async(status_, level, category_id, author_id, limit)


@router.post("/proposals", status_code=status.HTTP_201_CREATED)
async def create_proposal(
    schema: CreateProposalSchema,
    service: GovernanceService = Depends(GovernanceService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.create_proposal_async(schema, user)


@router.get("/proposals/{slug}")
async def get_proposal(slug: str, service: GovernanceService = Depends(GovernanceService)):
    return await service.get_proposal_by_slug_async(slug)


@router.post("/proposals/{proposal_id}/vote")
async def vote(
    proposal_id: uuid.UUID,
    schema: VoteSchema,
    service: GovernanceService = Depends(GovernanceService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.vote_async(proposal_id, schema, user)


@router.get("/proposals/{proposal_id}/votes")
async def get_votes(
    proposal_id: uuid.UUID,
    service: GovernanceService = Depends(GovernanceService),
):
    return await service.get_votes_async(proposal_id)


@router.get("/proposals/{proposal_id}/my-vote")
async def get_my_vote(
    proposal_id: uuid.UUID,
    service: GovernanceService = Depends(GovernanceService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await service.get_my_vote_async(proposal_id, user)


@router.post("/admin")
async def admin_action(
    schema: AdminActionSchema,
    service: GovernanceService = Depends(GovernanceService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.require_role([ADMIN, "mentor"])
    return await service.admin_action_async(schema, user)


@router.get("/admin")
async def get_admin_actions(
    proposal_id: Optional[uuid.UUID] = Query(None, alias="proposalId"),
    service: GovernanceService = Depends(GovernanceService),
):
    return await service.get_admin_actions_async(proposal_id)
