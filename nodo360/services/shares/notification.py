import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi_pagination import Params
from fastapi_pagination.ext.sqlalchemy import apaginate
from loguru import logger
from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.core.logging import short_id
from nodo360.db.models.database import Notifications, User
from nodo360.db.session import get_session
from nodo360.libs.formats.datetime import now as get_now
from nodo360.schemas.shares.notification import NotificationCreateSchema


class NotificationService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    # ==========================================================================
    # 📋 Listado paginado
    # ==========================================================================
    async def get_notifications_async(
        self,
        user_id: uuid.UUID,
        params: Params,
        type_: Optional[str] = None,
        is_read: Optional[bool] = None,
    ):
        stmt = select(Notifications).where(Notifications.user_id == user_id)
        if type_:
            stmt = stmt.where(Notifications.type == type_)
        if is_read is not None:
            stmt = stmt.where(Notifications.is_read.is_(is_read))
        stmt = stmt.order_by(Notifications.created_at.desc(), Notifications.id)

        return await apaginate(self.db, stmt, params)

    async def get_unread_count_async(self, user_id: uuid.UUID):
        unread = await self.db.scalar(
            select(func.count())
            .select_from(Notifications)
            .where(Notifications.user_id == user_id, Notifications.is_read.is_(False))
        )
        return {"unread": unread or 0}

    # ==========================================================================
    # 📨 Creación (best-effort: devuelve False si falla)
    # ==========================================================================
    async def create_notification_async(self, schema: NotificationCreateSchema) -> bool:
        try:
            self.db.add(
                Notifications(
                    user_id=schema.user_id,
                    type=schema.type,
                    title=schema.title,
                    message=schema.message,
                    link=schema.link,
                )
            )
            await self.db.commit()
            logger.info("✅ [in-app] Notificación creada para {}", short_id(schema.user_id))
            return True
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [in-app] Error creando notificación: {}", e)
            return False

    async def create_for_all_async(
        self, type_: str, title: str, message: str, link: Optional[str] = None
    ) -> bool:
        """Una notificación por cada usuario beta."""
        try:
            user_ids = (
                await self.db.scalars(select(User.id).where(User.is_beta.is_(True)))
            ).all()
            if not user_ids:
                return True

            created_at = get_now()
            await self.db.execute(
                insert(Notifications),
                [
                    {
                        "id": uuid.uuid4(),
                        "user_id": uid,
                        "type": type_,
                        "title": title,
                        "message": message,
                        "link": link,
                        "is_read": False,
                        "created_at": created_at,
                    }
                    for uid in user_ids
                ],
            )
            await self.db.commit()
            logger.info("✅ [in-app] Notificaciones creadas para {} usuarios", len(user_ids))
            return True
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [in-app] Error insertando notificaciones: {}", e)
            return False

    # ==========================================================================
    # ✔️ Marcar como leídas
    # ==========================================================================
    async def mark_as_read(self, notification_id: uuid.UUID, user_id: uuid.UUID):
        try:
            result = await self.db.execute(
                update(Notifications)
                .where(
                    Notifications.id == notification_id,
                    Notifications.user_id == user_id,
                    Notifications.is_read.is_(False),
                )
                .values(is_read=True, read_at=get_now())
            )
            if result.rowcount == 0:
                raise HTTPException(404, "Notificación no encontrada o ya leída")

            await self.db.commit()
            return {"success": True, "id": str(notification_id)}

        except HTTPException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            raise HTTPException(500, f"Error al marcar la notificación: {e}")

    async def mark_all_as_read(self, user_id: uuid.UUID):
        try:
            result = await self.db.execute(
                update(Notifications)
                .where(Notifications.user_id == user_id, Notifications.is_read.is_(False))
                .values(is_read=True, read_at=get_now())
            )
            await self.db.commit()
            return {"success": True, "updated": result.rowcount}
        except Exception as e:
            await self.db.rollback()
            raise HTTPException(500, f"Error al marcar las notificaciones: {e}")
