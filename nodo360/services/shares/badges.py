# nodo360/services/shares/badges.py
import uuid
from typing import Any, Dict, List, Optional

from fastapi import Depends
from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.core.logging import short_id
from nodo360.db.models.database import (
    Badges,
    Certificates,
    CourseEnrollments,
    QuizAttempts,
    UserBadges,
    UserGamificationStats,
    UserProgress,
)
from nodo360.db.session import get_session
from nodo360.schemas.shares.notification import NotificationCreateSchema
from nodo360.services.shares.gamification import GamificationService
from nodo360.services.shares.notification import NotificationService

XP_BY_RARITY = {"common": 10, "rare": 25, "epic": 50, "legendary": 100}

# requirement_type → contador a comparar con requirement_value
REQUIREMENT_COUNTERS = {
    "lessons_completed": "lessons",
    "lesson_count": "lessons",
    "courses_completed": "courses",
    "course_count": "courses",
    "quizzes_passed": "quizzes",
    "quiz_count": "quizzes",
    "certificates": "certificates",
    "certificates_earned": "certificates",
    "level": "level",
    "level_reached": "level",
    "streak": "streak",
    "streak_days": "streak",
    "xp": "xp",
    "total_xp": "xp",
}

# Badges antiguos sin requirement_type: se infieren por slug.
# Los patrones largos van primero ("level-50" antes que "level-5").
SLUG_RULES = [
    (("first-lesson", "primera-leccion"), "lessons", 1),
    (("100-lessons", "100-lecciones"), "lessons", 100),
    (("fifty-lessons", "50-lessons", "50-lecciones"), "lessons", 50),
    (("ten-lessons", "10-lessons", "10-lecciones"), "lessons", 10),
    (("first-course", "primer-curso"), "courses", 1),
    (("ten-courses", "10-courses", "10-cursos"), "courses", 10),
    (("five-courses", "5-courses", "5-cursos"), "courses", 5),
    (("three-courses", "3-courses", "3-cursos"), "courses", 3),
    (("level-50", "nivel-50"), "level", 50),
    (("level-25", "nivel-25"), "level", 25),
    (("level-10", "nivel-10"), "level", 10),
    (("level-5", "nivel-5"), "level", 5),
    (("streak-100", "racha-100"), "streak", 100),
    (("streak-30", "racha-30"), "streak", 30),
    (("streak-7", "racha-7"), "streak", 7),
    (("first-quiz", "primer-quiz"), "quizzes", 1),
    (("quiz-master", "maestro-quiz"), "quizzes", 10),
    (("first-certificate", "primer-certificado"), "certificates", 1),
]


def evaluate_requirement(badge: Badges, counters: Dict[str, int]) -> bool:
    """¿Cumplen los contadores el requisito del badge?"""
    req_type = (badge.requirement_type or "").lower()
    counter = REQUIREMENT_COUNTERS.get(req_type)
    if counter:
        return counters.get(counter, 0) >= (badge.requirement_value or 0)

    slug = (badge.slug or "").lower()
    for patterns, name, threshold in SLUG_RULES:
        if any(p in slug for p in patterns):
            return counters.get(name, 0) >= threshold
    return False


class BadgeService:
    """
    Otorgamiento automático de badges tras un evento de aprendizaje.

    Best-effort: un fallo nunca interrumpe la acción que lo dispara,
    solo se registra y se devuelve la lista de lo ya otorgado.
    """

    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        gamification: GamificationService = Depends(GamificationService),
        notifications: NotificationService = Depends(NotificationService),
    ):
        self.db = db
        self.gamification = gamification
        self.notifications = notifications

    async def _count(self, stmt) -> int:
        return (await self.db.scalar(stmt)) or 0

    async def get_counters(self, user_id: uuid.UUID) -> Dict[str, int]:
        stats = await self.db.get(UserGamificationStats, user_id, populate_existing=True)
        return {
            "lessons": await self._count(
                select(func.count())
                .select_from(UserProgress)
                .where(UserProgress.user_id == user_id, UserProgress.is_completed.is_(True))
            ),
            "courses": await self._count(
                select(func.count())
                .select_from(CourseEnrollments)
                .where(
                    CourseEnrollments.user_id == user_id,
                    CourseEnrollments.completed_at.is_not(None),
                )
            ),
            "quizzes": await self._count(
                select(func.count())
                .select_from(QuizAttempts)
                .where(QuizAttempts.user_id == user_id, QuizAttempts.passed.is_(True))
            ),
            "certificates": await self._count(
                select(func.count()).select_from(Certificates).where(Certificates.user_id == user_id)
            ),
            "level": stats.current_level if stats else 1,
            "streak": stats.current_streak if stats else 0,
            "xp": stats.total_xp if stats else 0,
        }

    async def check_and_award(
        self, user_id: uuid.UUID, event_type: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        awarded: List[Dict[str, Any]] = []
        try:
            earned = set(
                (
                    await self.db.scalars(
                        select(UserBadges.badge_id).where(UserBadges.user_id == user_id)
                    )
                ).all()
            )
            badges = (
                await self.db.scalars(
                    select(Badges).where(Badges.is_active.is_(True)).order_by(Badges.slug)
                )
            ).all()
            if not badges:
                return awarded

            counters = await self.get_counters(user_id)
            # Plano: los commits/rollbacks de abajo expiran las instancias ORM
            pending = [
                {
                    "id": b.id,
                    "slug": b.slug,
                    "title": b.title,
                    "description": b.description,
                    "rarity": b.rarity,
                }
                for b in badges
                if b.id not in earned and evaluate_requirement(b, counters)
            ]
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [badges] Error evaluando badges ({}): {}", event_type, e)
            return awarded

        for badge in pending:
            try:
                self.db.add(UserBadges(user_id=user_id, badge_id=badge["id"]))
                await self.db.commit()
            except IntegrityError:
                # Otra petición lo otorgó a la vez
                await self.db.rollback()
                continue
            except Exception as e:
                await self.db.rollback()
                logger.error("❌ [badges] Error insertando badge {}: {}", badge["slug"], e)
                continue

            xp_reward = XP_BY_RARITY.get(badge["rarity"] or "common", 10)
            try:
                await self.gamification.award_xp(
                    user_id,
                    "badge_earned",
                    amount=xp_reward,
                    description=f"Badge desbloqueado: {badge['title']}",
                )
                await self.db.execute(
                    update(UserGamificationStats)
                    .where(UserGamificationStats.user_id == user_id)
                    .values(total_badges=UserGamificationStats.total_badges + 1)
                )
                await self.db.commit()
            except Exception as e:
                await self.db.rollback()
                logger.error("❌ [badges] Error sumando XP del badge {}: {}", badge["slug"], e)

            await self.notifications.create_notification_async(
                NotificationCreateSchema(
                    user_id=user_id,
                    type="badge_earned",
                    title=f"🏅 Nuevo badge: {badge['title']}",
                    message=badge["description"],
                    link="/dashboard/badges",
                )
            )

            logger.info(
                "🏅 [badges] {} desbloqueó {} (+{} XP)", short_id(user_id), badge["slug"], xp_reward
            )
            awarded.append({**badge, "id": str(badge["id"]), "xpAwarded": xp_reward})

        return awarded
