from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.core.deps import ADMIN
from nodo360.core.logging import short_id
from nodo360.db.models.database import User
from nodo360.db.session import get_session
from nodo360.schemas.admin.users import SetBetaBulkSchema, SetBetaSchema
from nodo360.services.shares.broadcast import BroadcastService
from nodo360.services.shares.mailer import MailerService, get_mailer_service


class UserService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        mailer: MailerService = Depends(get_mailer_service),
        broadcast: BroadcastService = Depends(BroadcastService),
    ):
        self.db = db
        self.mailer = mailer
        self.broadcast = broadcast

    async def get_beta_stats_async(self):
        rows = (
            await self.db.execute(
                select(User.role, User.is_beta, func.count(User.id)).group_by(
                    User.role, User.is_beta
                )
            )
        ).all()

        stats = {
            "total": 0,
            "withBeta": 0,
            "withoutBeta": 0,
            "admins": 0,
            "instructors": 0,
            "students": 0,
        }
        for role, is_beta, count in rows:
            stats["total"] += count
            stats["withBeta" if is_beta else "withoutBeta"] += count
            if role == ADMIN:
                stats["admins"] += count
            elif role == "instructor":
                stats["instructors"] += count
            elif role == "student":
                stats["students"] += count
        return {"stats": stats}

    async def set_beta_async(self, schema: SetBetaSchema, admin: User):
        """
        Activa / desactiva el acceso beta.
        Al activar: email de bienvenida y, si se envió, broadcast newUser
        (in-app + Discord). Ninguno de los dos hace fallar la petición.
        """
        if not schema.user_id:
            raise HTTPException(400, "userId requerido")

        try:
            target = await self.db.get(User, schema.user_id)
            if not target:
                raise HTTPException(404, "Usuario no encontrado")

            if target.role == ADMIN and not schema.enabled:
                raise HTTPException(
                    400, "No puedes desactivar el acceso beta de un administrador"
                )

            target.is_beta = schema.enabled
            await self.db.commit()
            logger.info(
                "✅ [admin-beta] is_beta={} para {} (por {})",
                schema.enabled,
                short_id(target.id),
                short_id(admin.id),
            )
        except HTTPException:
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [admin-beta] Error actualizando is_beta: {}", e)
            raise HTTPException(500, "Error del servidor")

        email_sent = False
        if schema.enabled:
            user_name = target.full_name or "Usuario"
            if not target.email:
                logger.warning("⚠️ [admin-beta] Usuario {} sin email", short_id(target.id))
            else:
                result = await self.mailer.send_welcome_email(target.email, user_name)
                email_sent = result["success"]
                if email_sent:
                    await self.broadcast.new_user(target.id, user_name)

        return {
            "success": True,
            "message": "Acceso beta habilitado" if schema.enabled else "Acceso beta deshabilitado",
            "emailSent": email_sent,
        }

    async def set_beta_bulk_async(self, schema: SetBetaBulkSchema, admin: User):
        # los administradores nunca se ven afectados
        try:
            result = await self.db.execute(
                update(User)
                .where(User.id.in_(schema.user_ids), User.role != ADMIN)
                .values(is_beta=schema.enabled)
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [admin-beta] Error en actualización masiva: {}", e)
            raise HTTPException(500, "Error del servidor")

        logger.info(
            "✅ [admin-beta] {} usuarios → beta={} (por {})",
            len(schema.user_ids),
            schema.enabled,
            short_id(admin.id),
        )
        return {
            "success": True,
            "message": f"{len(schema.user_ids)} usuarios actualizados",
            "count": result.rowcount,
        }
