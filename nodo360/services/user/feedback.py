# nodo360/services/user/feedback.py
from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.core.logging import short_id
from nodo360.db.models.database import BetaFeedback, User
from nodo360.db.session import get_session
from nodo360.schemas.user.feedback import FeedbackSchema
from nodo360.services.shares.mailer import MailerService, get_mailer_service


class FeedbackService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        mailer: MailerService = Depends(get_mailer_service),
    ):
        self.db = db
        self.mailer = mailer

    async def create_feedback_async(self, schema: FeedbackSchema, user: User):
        message = (schema.message or "").strip()
        if not message:
            raise HTTPException(400, "El mensaje es requerido")

        try:
            feedback = BetaFeedback(
                user_id=user.id,
                user_email=user.email,
                page_url=schema.page_url,
                message=message,
                status="pending",
            )
            self.db.add(feedback)
            await self.db.commit()
            await self.db.refresh(feedback)
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [feedback] Error guardando feedback: {}", e)
            raise HTTPException(500, "Error al guardar el feedback")

        logger.info("💬 [feedback] {} de {}", short_id(feedback.id), short_id(user.id))

        # Aviso al buzón de la plataforma (best-effort)
        await self.mailer.send_feedback_email(
            user.email, schema.page_url, message, str(feedback.id)
        )

        return {"success": True, "id": str(feedback.id)}
