# nodo360/services/shares/mentor.py
from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.core.logging import short_id
from nodo360.db.models.database import MentorApplications, User
from nodo360.db.rpc import RpcClient, RpcError
from nodo360.db.session import get_session
from nodo360.schemas.shares.mentor import MentorApplySchema

MIN_MOTIVATION_LENGTH = 50


class MentorService:
    """Solicitudes para ser mentor. Elegibilidad y alta las decide la base de datos (RPC)."""

    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        rpc: RpcClient = Depends(RpcClient),
    ):
        self.db = db
        self.rpc = rpc

    async def get_eligibility_async(self, user: User) -> dict:
        try:
            result = await self.rpc.call("can_apply_mentor", p_user_id=user.id)
        except RpcError:
            raise HTTPException(500, "Error al verificar la elegibilidad")

        if isinstance(result, dict):
            return {**result, "can_apply": result.get("can_apply") is True}
        return {"can_apply": result is True}

    async def apply_async(self, schema: MentorApplySchema, user: User):
        motivation = schema.motivation.strip()
        if len(motivation) < MIN_MOTIVATION_LENGTH:
            raise HTTPException(
                400, f"La motivación debe tener al menos {MIN_MOTIVATION_LENGTH} caracteres"
            )

        eligibility = await self.get_eligibility_async(user)
        if not eligibility["can_apply"]:
            raise HTTPException(
                403,
                eligibility.get("reason") or "No cumples los requisitos para aplicar a mentor",
            )

        try:
            result = await self.rpc.call(
                "submit_mentor_application",
                p_user_id=user.id,
                p_motivation=motivation,
                p_experience=(schema.experience or "").strip() or None,
                p_availability=(schema.availability or "").strip() or None,
            )
        except RpcError as e:
            raise HTTPException(400, e.message)

        application_id = (
            result.get("application_id") or result.get("id")
            if isinstance(result, dict)
            else result
        )
        if not application_id:
            raise HTTPException(500, "No se pudo registrar la solicitud")

        logger.info("✅ [mentor] Solicitud {} de {}", application_id, short_id(user.id))
        return {"success": True, "applicationId": str(application_id)}

    async def get_my_applications_async(self, user: User):
        applications = (
            await self.db.scalars(
                select(MentorApplications)
                .where(MentorApplications.user_id == user.id)
                .order_by(MentorApplications.created_at.desc())
            )
        ).all()
        return [
            {
                "id": str(a.id),
                "motivation": a.motivation,
                "experience": a.experience,
                "availability": a.availability,
                "status": a.status,
                "votes_for": a.votes_for,
                "votes_against": a.votes_against,
                "created_at": a.created_at,
                "resolved_at": a.resolved_at,
            }
            for a in applications
        ]
