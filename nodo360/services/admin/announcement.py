# nodo360/services/admin/announcement.py
from fastapi import Depends, HTTPException
from loguru import logger

from nodo360.core.logging import short_id
from nodo360.db.models.database import User
from nodo360.schemas.admin.announcements import AnnouncementSchema
from nodo360.services.shares.broadcast import BroadcastService
from nodo360.services.user.enroll import safe_redirect_target


class AnnouncementService:
    def __init__(self, broadcast: BroadcastService = Depends(BroadcastService)):
        self.broadcast = broadcast

    async def send_announcement_async(self, schema: AnnouncementSchema, admin: User):
        if not schema.title or not schema.message:
            raise HTTPException(400, "Título y mensaje son requeridos")
        if schema.link and not safe_redirect_target(schema.link):
            raise HTTPException(400, "El enlace debe ser una ruta interna (/...)")
        if not schema.channels.in_app and not schema.channels.discord:
            raise HTTPException(400, "Selecciona al menos un canal")

        result = await self.broadcast.announcement(
            schema.title,
            schema.message,
            schema.link,
            in_app=schema.channels.in_app,
            discord=schema.channels.discord,
        )
        logger.info("📣 [announcements] '{}' enviado por {}", schema.title, short_id(admin.id))
        return {"success": True, "channels": result}
