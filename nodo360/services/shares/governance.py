# nodo360/services/shares/governance.py
import datetime
import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from nodo360.core.deps import ADMIN
from nodo360.core.logging import short_id
from nodo360.db.models.database import (
    GovernanceAdminActions,
    GovernanceCategories,
    GovernanceProposals,
    GovernanceVotes,
    User,
)
from nodo360.db.rpc import RpcClient, RpcError
from nodo360.db.session import get_session
from nodo360.libs.formats.datetime import now as get_now, seconds_until
from nodo360.libs.formats.text import generate_slug
from nodo360.schemas.shares.governance import (
    VOTE_TYPES,
    AdminActionSchema,
    CreateProposalSchema,
    VoteSchema,
)
from nodo360.services.shares.broadcast import BroadcastService

VOTING_PERIOD = datetime.timedelta(days=7)

# acción → (estados de origen, estado destino, mensaje si el origen no vale)
TRANSITIONS = {
    "validate": (("pending_review",), "active", "Solo se pueden validar propuestas en revisión"),
    "reject_validation": (("pending_review",), "draft", "Solo se pueden rechazar propuestas en revisión"),
    "veto": (("active", "passed"), "cancelled", "Solo se pueden vetar propuestas activas o aprobadas"),
    "cancel": (("active",), "cancelled", "Solo se pueden cancelar votaciones activas"),
    "implement": (("passed",), "implemented", "Solo se pueden implementar propuestas aprobadas"),
}


def resolve_transition(action: str, current_status: str, role: str) -> str:
    """Estado destino de una acción de moderación; HTTPException si no es válida."""
    if action not in TRANSITIONS:
        raise HTTPException(400, "Acción no válida")
    sources, target, message = TRANSITIONS[action]
    if current_status not in sources:
        raise HTTPException(400, message)
    if action == "veto" and role != ADMIN:
        raise HTTPException(403, "Solo administradores pueden vetar")
    return target


class GovernanceService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        rpc: RpcClient = Depends(RpcClient),
        broadcast: BroadcastService = Depends(BroadcastService),
    ):
        self.db = db
        self.rpc = rpc
        self.broadcast = broadcast

    # ==============================
    # 🧩 HELPERS
    # ==============================

    async def get_gpower(self, user_id: uuid.UUID) -> int:
        try:
            value = await self.rpc.call("calculate_gpower", p_user_id=user_id)
        except RpcError:
            return 0
        return int(value or 0)

    @staticmethod
    def _serialize_proposal(p: GovernanceProposals, author_gpower: int = 0) -> dict:
        return {
            "id": str(p.id),
            "title": p.title,
            "slug": p.slug,
            "description": p.description,
            "detailed_content": p.detailed_content,
            "category_id": str(p.category_id) if p.category_id else None,
            "proposal_level": p.proposal_level,
            "tags": p.tags or [],
            "author_id": str(p.author_id),
            "status": p.status,
            "validated_by": str(p.validated_by) if p.validated_by else None,
            "validated_at": p.validated_at,
            "voting_starts_at": p.voting_starts_at,
            "voting_ends_at": p.voting_ends_at,
            "quorum_required": p.quorum_required,
            "approval_threshold": float(p.approval_threshold or 0),
            "total_votes": p.total_votes,
            "total_gpower_for": p.total_gpower_for,
            "total_gpower_against": p.total_gpower_against,
            "total_gpower_abstain": p.total_gpower_abstain,
            "implemented_at": p.implemented_at,
            "created_at": p.created_at,
            "updated_at": p.updated_at,
            "author_name": p.author.full_name if p.author else None,
            "author_avatar": p.author.avatar_url if p.author else None,
            "author_role": p.author.role if p.author else "student",
            "author_gpower": author_gpower,
            "category_name": p.category.name if p.category else None,
            "category_icon": p.category.icon if p.category else None,
            "category_color": p.category.color if p.category else None,
            "seconds_remaining": seconds_until(p.voting_ends_at),
        }

    def _proposal_query(self):
        return select(GovernanceProposals).options(
            selectinload(GovernanceProposals.author),
            selectinload(GovernanceProposals.category),
        )

    # ==============================
    # 📋 LECTURAS
    # ==============================

    async def get_categories_async(self, level: Optional[int] = None):
        stmt = (
            select(GovernanceCategories)
            .where(GovernanceCategories.is_active.is_(True))
            .order_by(GovernanceCategories.order_index)
        )
        if level:
            stmt = stmt.where(GovernanceCategories.proposal_level == level)
        categories = (await self.db.scalars(stmt)).all()
        return [
            {
                "id": str(c.id),
                "slug": c.slug,
                "name": c.name,
                "description": c.description,
                "icon": c.icon,
                "color": c.color,
                "proposal_level": c.proposal_level,
                "order_index": c.order_index,
            }
            for c in categories
        ]

    async def get_proposals_async(
        self,
        status: Optional[list[str]] = None,
        level: Optional[int] = None,
        category_id: Optional[uuid.UUID] = None,
        author_id: Optional[uuid.UUID] = None,
        limit: Optional[int] = None,
    ):
        stmt = self._proposal_query().order_by(GovernanceProposals.created_at.desc())
        if status:
            stmt = stmt.where(GovernanceProposals.status.in_(status))
        if level:
            stmt = stmt.where(GovernanceProposals.proposal_level == level)
        if category_id:
            stmt = stmt.where(GovernanceProposals.category_id == category_id)
        if author_id:
            stmt = stmt.where(GovernanceProposals.author_id == author_id)
        if limit:
            stmt = stmt.limit(limit)

        # gPower del autor no se calcula en listados
        proposals = (await self.db.scalars(stmt)).all()
        return [self._serialize_proposal(p) for p in proposals]

    async def get_proposal_by_slug_async(self, slug: str):
        proposal = await self.db.scalar(
            self._proposal_query().where(GovernanceProposals.slug == slug)
        )
        if not proposal:
            raise HTTPException(404, "Propuesta no encontrada")
        gpower = await self.get_gpower(proposal.author_id)
        return self._serialize_proposal(proposal, author_gpower=gpower)

    async def get_votes_async(self, proposal_id: uuid.UUID):
        votes = (
            await self.db.scalars(
                select(GovernanceVotes)
                .options(selectinload(GovernanceVotes.voter))
                .where(GovernanceVotes.proposal_id == proposal_id)
                .order_by(GovernanceVotes.created_at.desc())
            )
        ).all()
        return [
            {
                **self._serialize_vote(v),
                "voter": {
                    "id": str(v.voter.id),
                    "full_name": v.voter.full_name,
                    "avatar_url": v.voter.avatar_url,
                }
                if v.voter
                else None,
            }
            for v in votes
        ]

    @staticmethod
    def _serialize_vote(v: GovernanceVotes) -> dict:
        return {
            "id": str(v.id),
            "proposal_id": str(v.proposal_id),
            "voter_id": str(v.voter_id),
            "vote": v.vote,
            "gpower_used": v.gpower_used,
            "comment": v.comment,
            "created_at": v.created_at,
        }

    async def get_my_vote_async(self, proposal_id: uuid.UUID, user: User):
        vote = await self.db.scalar(
            select(GovernanceVotes).where(
                GovernanceVotes.proposal_id == proposal_id,
                GovernanceVotes.voter_id == user.id,
            )
        )
        return {"vote": self._serialize_vote(vote) if vote else None}

    async def get_stats_async(self):
        rows = (
            await self.db.execute(
                select(GovernanceProposals.status, func.count()).group_by(
                    GovernanceProposals.status
                )
            )
        ).all()
        by_status = {status: count for status, count in rows}

        total_votes = await self.db.scalar(select(func.count(GovernanceVotes.id)))
        participants = await self.db.scalar(
            select(func.count(distinct(GovernanceVotes.voter_id)))
        )
        return {
            "totalProposals": sum(by_status.values()),
            "activeProposals": by_status.get("active", 0),
            "passedProposals": by_status.get("passed", 0) + by_status.get("implemented", 0),
            "totalVotes": total_votes or 0,
            "totalParticipants": participants or 0,
        }

    # ==============================
    # ✍️ ESCRITURAS
    # ==============================

    async def create_proposal_async(self, schema: CreateProposalSchema, user: User):
        # 1️⃣ Permiso por nivel (RPC)
        try:
            allowed = await self.rpc.call(
                "can_create_proposal", p_user_id=user.id, p_level=schema.proposal_level
            )
        except RpcError:
            allowed = False
        if not allowed:
            raise HTTPException(
                403, f"No tienes permisos para crear propuestas de nivel {schema.proposal_level}"
            )

        # 2️⃣ Categoría activa
        category = await self.db.get(GovernanceCategories, schema.category_id)
        if not category or not category.is_active:
            raise HTTPException(400, "Categoría no válida")

        try:
            proposal = GovernanceProposals(
                title=schema.title,
                slug=f"{generate_slug(schema.title)}-{uuid.uuid4().hex[:6]}",
                description=schema.description,
                detailed_content=schema.detailed_content,
                category_id=schema.category_id,
                proposal_level=schema.proposal_level,
                tags=schema.tags,
                author_id=user.id,
                status=schema.status,
            )
            self.db.add(proposal)
            await self.db.commit()
            await self.db.refresh(proposal)
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [governance] Error creando propuesta: {}", e)
            raise HTTPException(500, "Error al crear la propuesta")

        logger.info("✅ [governance] Propuesta {} creada por {}", proposal.slug, short_id(user.id))

        return {"success": True, "proposal": {"id": str(proposal.id), "slug": proposal.slug}}

    async def vote_async(self, proposal_id: uuid.UUID, schema: VoteSchema, user: User):
        if schema.vote not in VOTE_TYPES:
            raise HTTPException(400, "Voto inválido. Debe ser: for, against o abstain")

        proposal = await self.db.get(GovernanceProposals, proposal_id)
        if not proposal:
            raise HTTPException(404, "Propuesta no encontrada")

        if proposal.status != "active":
            raise HTTPException(400, "Esta propuesta no está en votación")
        if proposal.voting_ends_at and proposal.voting_ends_at <= get_now():
            raise HTTPException(400, "El período de votación ha terminado")

        existing = await self.db.scalar(
            select(GovernanceVotes.id).where(
                GovernanceVotes.proposal_id == proposal_id,
                GovernanceVotes.voter_id == user.id,
            )
        )
        if existing:
            raise HTTPException(409, "Ya has votado en esta propuesta")

        gpower = await self.get_gpower(user.id)
        if gpower <= 0:
            raise HTTPException(403, "No tienes gPower suficiente para votar")

        try:
            vote = GovernanceVotes(
                proposal_id=proposal_id,
                voter_id=user.id,
                vote=schema.vote,
                gpower_used=gpower,
                comment=(schema.comment or "").strip() or None,
            )
            self.db.add(vote)
            await self.db.commit()
            await self.db.refresh(vote)
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [governance] Error registrando voto: {}", e)
            raise HTTPException(500, "Error al registrar el voto")

        logger.info(
            "🗳️ [governance] {} votó '{}' ({} gPower) en {}",
            short_id(user.id),
            schema.vote,
            gpower,
            short_id(proposal_id),
        )
        return {"success": True, "vote": self._serialize_vote(vote)}

    # ==============================
    # 🛡️ MODERACIÓN (admin / mentor)
    # ==============================

    async def admin_action_async(self, schema: AdminActionSchema, user: User):
        if not schema.proposal_id or not schema.action:
            raise HTTPException(400, "Faltan campos requeridos")

        proposal = await self.db.get(GovernanceProposals, schema.proposal_id)
        if not proposal:
            raise HTTPException(404, "Propuesta no encontrada")

        previous_status = proposal.status
        new_status = resolve_transition(schema.action, previous_status, user.role)
        title, slug = proposal.title, proposal.slug

        try:
            now = get_now()
            proposal.status = new_status
            proposal.updated_at = now
            if schema.action == "validate":
                proposal.validated_by = user.id
                proposal.validated_at = now
                proposal.voting_starts_at = now
                proposal.voting_ends_at = now + VOTING_PERIOD
            elif schema.action == "implement":
                proposal.implemented_at = now
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [governance] Error actualizando propuesta: {}", e)
            raise HTTPException(500, "Error al actualizar propuesta")

        # Registro de la acción: si falla, la transición ya está hecha
        try:
            self.db.add(
                GovernanceAdminActions(
                    proposal_id=proposal.id,
                    admin_id=user.id,
                    action=schema.action,
                    reason=schema.reason or None,
                    previous_status=previous_status,
                    new_status=new_status,
                    is_public=schema.is_public,
                )
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [governance] Error registrando acción: {}", e)

        logger.info(
            "🛡️ [governance] {} {}: {} → {}",
            short_id(user.id),
            schema.action,
            previous_status,
            new_status,
        )

        # La votación se abre al validar: solo entonces se avisa a la comunidad
        if new_status == "active" and previous_status == "pending_review":
            await self.broadcast.new_proposal(title, slug)

        return {
            "success": True,
            "previousStatus": previous_status,
            "newStatus": new_status,
            "action": schema.action,
        }

    async def get_admin_actions_async(self, proposal_id: Optional[uuid.UUID]):
        if not proposal_id:
            raise HTTPException(400, "proposalId requerido")

        actions = (
            await self.db.scalars(
                select(GovernanceAdminActions)
                .options(selectinload(GovernanceAdminActions.admin))
                .where(
                    GovernanceAdminActions.proposal_id == proposal_id,
                    GovernanceAdminActions.is_public.is_(True),
                )
                .order_by(GovernanceAdminActions.created_at.desc())
            )
        ).all()
        return {
            "actions": [
                {
                    "id": str(a.id),
                    "action": a.action,
                    "reason": a.reason,
                    "previous_status": a.previous_status,
                    "new_status": a.new_status,
                    "created_at": a.created_at,
                    "admin": {
                        "id": str(a.admin.id),
                        "full_name": a.admin.full_name,
                        "avatar_url": a.admin.avatar_url,
                    }
                    if a.admin
                    else None,
                }
                for a in actions
            ]
        }
