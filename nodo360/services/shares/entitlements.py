# nodo360/services/shares/entitlements.py
import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.core.logging import short_id
from nodo360.db.models.database import Entitlements, User
from nodo360.db.session import get_session
from nodo360.libs.formats.datetime import now as get_now
from nodo360.libs.formats.datetime import to_utc_naive
from nodo360.schemas.admin.entitlements import ENTITLEMENT_TYPES, GrantEntitlementSchema


class EntitlementService:
    """Permisos de acceso a contenido premium."""

    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    @staticmethod
    def _not_expired():
        return or_(Entitlements.expires_at.is_(None), Entitlements.expires_at > get_now())

    # ==============================
    # 🔍 LECTURA
    # ==============================

    async def has_entitlement(self, user_id: uuid.UUID, course_id: uuid.UUID) -> bool:
        """course_access activo para ese curso o full_platform, sin expirar."""
        try:
            found = await self.db.scalar(
                select(Entitlements.id)
                .where(
                    Entitlements.user_id == user_id,
                    Entitlements.is_active.is_(True),
                    or_(
                        and_(
                            Entitlements.type == "course_access",
                            Entitlements.target_id == course_id,
                        ),
                        Entitlements.type == "full_platform",
                    ),
                    self._not_expired(),
                )
                .limit(1)
            )
            return found is not None
        except Exception as e:
            logger.error("❌ [entitlements] Error comprobando acceso: {}", e)
            return False

    async def list_entitlements_async(
        self,
        user_id: Optional[uuid.UUID] = None,
        type: Optional[str] = None,
        page: int = 1,
        page_size: int = 25,
    ):
        filters = [Entitlements.is_active.is_(True)]
        if user_id:
            filters.append(Entitlements.user_id == user_id)
        if type:
            filters.append(Entitlements.type == type)

        total = await self.db.scalar(
            select(func.count()).select_from(Entitlements).where(*filters)
        )
        rows = (
            await self.db.execute(
                select(Entitlements, User.full_name, User.email)
                .join(User, User.id == Entitlements.user_id)
                .where(*filters)
                .order_by(Entitlements.created_at.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
        ).all()

        return {
            "entitlements": [
                {
                    "id": str(e.id),
                    "user_id": str(e.user_id),
                    "type": e.type,
                    "target_id": str(e.target_id) if e.target_id else None,
                    "reason": e.reason,
                    "is_active": e.is_active,
                    "starts_at": e.starts_at,
                    "expires_at": e.expires_at,
                    "created_at": e.created_at,
                    "user": {"full_name": full_name, "email": email},
                }
                for e, full_name, email in rows
            ],
            "total": total or 0,
        }

    # ==============================
    # ✍️ ESCRITURA (solo admin)
    # ==============================

    async def grant_entitlement_async(self, schema: GrantEntitlementSchema, admin: User):
        if schema.type not in ENTITLEMENT_TYPES:
            raise HTTPException(400, f"type debe ser uno de: {', '.join(ENTITLEMENT_TYPES)}")
        if schema.type == "course_access" and not schema.target_id:
            raise HTTPException(
                400, "target_id (course_id) es requerido para course_access"
            )

        try:
            # Si ya existe uno del mismo tipo + destino, se reactiva y se reemplaza
            existing = await self.db.scalar(
                select(Entitlements).where(
                    Entitlements.user_id == schema.user_id,
                    Entitlements.type == schema.type,
                    (
                        Entitlements.target_id == schema.target_id
                        if schema.target_id
                        else Entitlements.target_id.is_(None)
                    ),
                )
            )
            entitlement = existing or Entitlements(
                user_id=schema.user_id, type=schema.type, target_id=schema.target_id
            )
            entitlement.granted_by = admin.id
            entitlement.reason = schema.reason
            entitlement.is_active = True
            entitlement.starts_at = get_now()
            entitlement.expires_at = to_utc_naive(schema.expires_at)

            if not existing:
                self.db.add(entitlement)
            await self.db.commit()
            await self.db.refresh(entitlement)

            logger.info(
                "🎟️ [entitlements] {} otorgó {} a {}",
                short_id(admin.id),
                schema.type,
                short_id(schema.user_id),
            )
            return {
                "entitlement": {
                    "id": str(entitlement.id),
                    "user_id": str(entitlement.user_id),
                    "type": entitlement.type,
                    "target_id": str(entitlement.target_id) if entitlement.target_id else None,
                    "is_active": entitlement.is_active,
                    "expires_at": entitlement.expires_at,
                }
            }

        except HTTPException:
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [entitlements] Error otorgando acceso: {}", e)
            raise HTTPException(500, f"Error al otorgar el acceso: {e}")

    async def revoke_entitlement_async(self, entitlement_id: uuid.UUID):
        try:
            result = await self.db.execute(
                update(Entitlements)
                .where(Entitlements.id == entitlement_id)
                .values(is_active=False, updated_at=get_now())
            )
            await self.db.commit()
            if result.rowcount == 0:
                raise HTTPException(404, "Entitlement no encontrado")
            return {"success": True}
        except HTTPException:
            raise
        except Exception as e:
            await self.db.rollback()
            raise HTTPException(500, f"Error al revocar el acceso: {e}")
