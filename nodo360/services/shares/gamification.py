# nodo360/services/shares/gamification.py
import math
import uuid
from typing import Any, Dict, Optional, Tuple

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.core.logging import short_id
from nodo360.db.models.database import (
    Badges,
    User,
    UserBadges,
    UserGamificationStats,
    XpEvents,
)
from nodo360.db.session import get_session
from nodo360.db.upsert import upsert_stmt
from nodo360.libs.formats.datetime import now as get_now
from nodo360.schemas.admin.system_settings import DEFAULT_LEVEL_RULES, DEFAULT_XP_RULES
from nodo360.schemas.shares.gamification import AdjustXpSchema
from nodo360.services.admin.system_settings import SystemSettingsService

EVENT_DESCRIPTIONS = {
    "lesson_completed": "Lección completada",
    "quiz_passed": "Quiz aprobado",
    "perfect_score": "Puntuación perfecta",
    "course_completed": "Curso completado",
    "daily_login": "Login diario",
    "streak_bonus": "Bonus de racha",
    "badge_earned": "Badge desbloqueado",
    "admin_adjustment": "Ajuste manual de admin",
}


def _as_number(value: Any, fallback: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    return number if math.isfinite(number) else fallback


def xp_for_level(level: int, rules: Dict[str, Any]) -> int:
    """XP necesaria para pasar de `level` a `level + 1`."""
    base = _as_number(rules.get("xp_base"), DEFAULT_LEVEL_RULES["xp_base"])
    multiplier = _as_number(rules.get("xp_multiplier"), DEFAULT_LEVEL_RULES["xp_multiplier"])
    return max(1, math.floor(base * multiplier ** (level - 1)))


def calculate_level(total_xp: int, rules: Dict[str, Any]) -> Tuple[int, int]:
    """
    Nivel y XP restante para el siguiente a partir de la XP total.

    Curva geométrica acumulada: nivel 1→2 cuesta xp_base, cada nivel
    siguiente multiplica el coste por xp_multiplier, hasta max_level.
    En el nivel máximo xp_to_next_level es 0.
    """
    max_level = int(_as_number(rules.get("max_level"), DEFAULT_LEVEL_RULES["max_level"]))
    level = 1
    remaining = max(0, int(total_xp))

    while level < max_level:
        needed = xp_for_level(level, rules)
        if remaining < needed:
            return level, needed - remaining
        remaining -= needed
        level += 1

    return max_level, 0


def xp_for_event(event_type: str, rules: Dict[str, Any]) -> int:
    if event_type == "admin_adjustment":
        return 0
    default = DEFAULT_XP_RULES.get(event_type, 0)
    return int(_as_number(rules.get(event_type), default)) or default


class GamificationService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        settings_service: SystemSettingsService = Depends(SystemSettingsService),
    ):
        self.db = db
        self.settings_service = settings_service

    async def award_xp(
        self,
        user_id: uuid.UUID,
        event_type: str,
        amount: Optional[int] = None,
        description: Optional[str] = None,
    ) -> Dict[str, int]:
        """
        Suma XP de forma centralizada.
        - reglas desde system_settings (xp_rules / level_rules) con defaults
        - solo admin_adjustment admite cantidades negativas
        - la XP total nunca baja de 0
        - recalcula nivel, hace upsert de stats e inserta xp_event si XP > 0
        """
        if event_type not in EVENT_DESCRIPTIONS:
            raise ValueError(f"Tipo de evento XP desconocido: {event_type}")

        xp_rules = await self.settings_service.get("xp_rules", DEFAULT_XP_RULES)
        level_rules = await self.settings_service.get("level_rules", DEFAULT_LEVEL_RULES)

        # 1️⃣ XP a sumar
        raw = amount if amount is not None else xp_for_event(event_type, xp_rules)
        xp_to_add = int(raw) if event_type == "admin_adjustment" else max(0, int(raw))

        # 2️⃣ Stats actuales (pueden no existir)
        current = await self.db.get(UserGamificationStats, user_id, populate_existing=True)
        current_xp = current.total_xp if current else 0
        new_xp = max(0, current_xp + xp_to_add)
        level, xp_to_next = calculate_level(new_xp, level_rules)

        # 3️⃣ Upsert único
        now = get_now()
        values = {
            "user_id": user_id,
            "total_xp": new_xp,
            "current_level": level,
            "xp_to_next_level": xp_to_next,
            "total_badges": current.total_badges if current else 0,
            "current_streak": current.current_streak if current else 0,
            "longest_streak": current.longest_streak if current else 0,
            "last_activity_date": now.date(),
            "created_at": now,
            "updated_at": now,
        }
        await self.db.execute(
            upsert_stmt(
                self.db,
                UserGamificationStats,
                values,
                conflict_cols=["user_id"],
                update_cols=[
                    "total_xp",
                    "current_level",
                    "xp_to_next_level",
                    "last_activity_date",
                    "updated_at",
                ],
            )
        )
        await self.db.commit()

        # 4️⃣ Evento XP (best-effort, solo positivo)
        if xp_to_add > 0:
            try:
                self.db.add(
                    XpEvents(
                        user_id=user_id,
                        event_type=event_type,
                        xp_earned=xp_to_add,
                        description=(description or "").strip() or EVENT_DESCRIPTIONS[event_type],
                    )
                )
                await self.db.commit()
            except Exception as e:
                await self.db.rollback()
                logger.error("❌ [xp] Error insertando xp_event: {}", e)

        if current and level > current.current_level:
            logger.info("🎉 [xp] {} sube a nivel {}", short_id(user_id), level)

        return {
            "xpAwarded": xp_to_add,
            "totalXP": new_xp,
            "level": level,
            "xpToNextLevel": xp_to_next,
        }

    async def get_stats_async(self, user: User):
        try:
            stats = await self.db.get(UserGamificationStats, user.id)

            # Sin stats → se crean con valores iniciales
            if not stats:
                logger.info("[gamification] {} sin stats, creando...", short_id(user.id))
                stats = UserGamificationStats(
                    user_id=user.id,
                    total_xp=0,
                    current_level=1,
                    xp_to_next_level=DEFAULT_LEVEL_RULES["xp_base"],
                    current_streak=0,
                    longest_streak=0,
                )
                self.db.add(stats)
                await self.db.commit()
                await self.db.refresh(stats)
                return {"stats": self._serialize_stats(stats), "badges": [], "recentActivity": []}

            badges = (
                await self.db.execute(
                    select(UserBadges, Badges)
                    .join(Badges, Badges.id == UserBadges.badge_id)
                    .where(UserBadges.user_id == user.id)
                    .order_by(UserBadges.unlocked_at.desc())
                    .limit(10)
                )
            ).all()

            events = (
                await self.db.scalars(
                    select(XpEvents)
                    .where(XpEvents.user_id == user.id)
                    .order_by(XpEvents.created_at.desc())
                    .limit(10)
                )
            ).all()

            return {
                "stats": self._serialize_stats(stats),
                "badges": [
                    {
                        "id": str(ub.id),
                        "unlocked_at": ub.unlocked_at,
                        "badge": {
                            "id": str(b.id),
                            "slug": b.slug,
                            "title": b.title,
                            "description": b.description,
                            "icon": b.icon,
                            "rarity": b.rarity,
                            "category": b.category,
                        },
                    }
                    for ub, b in badges
                ],
                "recentActivity": [
                    {
                        "id": str(e.id),
                        "event_type": e.event_type,
                        "xp_earned": e.xp_earned,
                        "description": e.description,
                        "created_at": e.created_at,
                    }
                    for e in events
                ],
            }

        except HTTPException:
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [gamification] Error obteniendo stats: {}", e)
            raise HTTPException(500, "Error al obtener estadísticas")

    async def adjust_xp_async(self, schema: AdjustXpSchema, admin: User):
        target = await self.db.get(User, schema.user_id)
        if not target:
            raise HTTPException(404, "Usuario no encontrado")

        try:
            result = await self.award_xp(
                schema.user_id,
                "admin_adjustment",
                amount=schema.amount,
                description=schema.reason,
            )
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [xp] Error en ajuste manual: {}", e)
            raise HTTPException(500, f"Error al ajustar XP: {e}")

        logger.info(
            "🛠️ [xp] {} ajustó {} XP a {}",
            short_id(admin.id),
            schema.amount,
            short_id(schema.user_id),
        )
        return {"success": True, **result}

    @staticmethod
    def _serialize_stats(stats: UserGamificationStats) -> dict:
        return {
            "user_id": str(stats.user_id),
            "total_xp": stats.total_xp,
            "current_level": stats.current_level,
            "xp_to_next_level": stats.xp_to_next_level,
            "total_badges": stats.total_badges,
            "current_streak": stats.current_streak,
            "longest_streak": stats.longest_streak,
            "last_activity_date": stats.last_activity_date,
        }
