# nodo360/services/shares/broadcast.py
import uuid
from typing import Optional

from fastapi import Depends
from loguru import logger

from nodo360.core.settings import settings
from nodo360.schemas.shares.notification import NotificationCreateSchema
from nodo360.services.shares.discord import DiscordNotifier, get_discord_notifier
from nodo360.services.shares.notification import NotificationService


class BroadcastService:
    """In-app + Discord para los eventos de la plataforma. Ningún canal lanza."""

    def __init__(
        self,
        notifications: NotificationService = Depends(NotificationService),
        discord: DiscordNotifier = Depends(get_discord_notifier),
    ):
        self.notifications = notifications
        self.discord = discord

    async def new_user(self, user_id: uuid.UUID, user_name: str) -> dict:
        in_app = await self.notifications.create_notification_async(
            NotificationCreateSchema(
                user_id=user_id,
                type="welcome",
                title="¡Bienvenido a Nodo360!",
                message="Tu acceso beta ha sido activado. ¡Explora los cursos y comienza tu viaje!",
                link="/cursos",
            )
        )
        discord = await self.discord.new_user(user_name)
        logger.info("📢 [broadcast] newUser: in_app={} discord={}", in_app, discord)
        return {"in_app": in_app, "discord": discord}

    async def course_completed(
        self, user_id: uuid.UUID, user_name: str, course_name: str
    ) -> dict:
        in_app = await self.notifications.create_notification_async(
            NotificationCreateSchema(
                user_id=user_id,
                type="course_completed",
                title="🏆 ¡Curso completado!",
                message=f'Has completado el curso "{course_name}". ¡Felicidades!',
                link="/dashboard/certificados",
            )
        )
        discord = await self.discord.course_completed(user_name, course_name)
        logger.info("📢 [broadcast] courseCompleted: in_app={} discord={}", in_app, discord)
        return {"in_app": in_app, "discord": discord}

    async def new_proposal(self, title: str, proposal_slug: str) -> dict:
        link = f"/gobernanza/{proposal_slug}"
        in_app = await self.notifications.create_for_all_async(
            "proposal_active",
            "🗳️ Nueva propuesta",
            f'Nueva propuesta: "{title}". ¡Participa y vota!',
            link,
        )
        discord = await self.discord.new_proposal(title, f"{settings.SITE_URL}{link}")
        logger.info("📢 [broadcast] newProposal: in_app={} discord={}", in_app, discord)
        return {"in_app": in_app, "discord": discord}

    async def new_course(self, course_name: str, course_slug: str) -> dict:
        link = f"/cursos/{course_slug}"
        in_app = await self.notifications.create_for_all_async(
            "course_published",
            "📚 Nuevo curso disponible",
            f'Se ha publicado "{course_name}". ¡Empieza a aprender!',
            link,
        )
        discord = await self.discord.new_course(course_name, f"{settings.SITE_URL}{link}")
        logger.info("📢 [broadcast] newCourse: in_app={} discord={}", in_app, discord)
        return {"in_app": in_app, "discord": discord}

    async def announcement(
        self,
        title: str,
        message: str,
        link: Optional[str] = None,
        in_app: bool = True,
        discord: bool = True,
    ) -> dict:
        """Anuncio general; cada canal se puede desactivar."""
        sent_in_app = (
            await self.notifications.create_for_all_async("system", title, message, link)
            if in_app
            else None
        )
        sent_discord = await self.discord.announcement(title, message) if discord else None
        logger.info(
            "📢 [broadcast] announcement: in_app={} discord={}", sent_in_app, sent_discord
        )
        return {"in_app": sent_in_app, "discord": sent_discord}
