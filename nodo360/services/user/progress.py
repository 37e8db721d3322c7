# nodo360/services/user/progress.py
import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.core.logging import short_id
from nodo360.db.models.database import CourseEnrollments, Courses, User
from nodo360.db.session import get_session
from nodo360.libs.formats.datetime import now as get_now
from nodo360.services.shares.badges import BadgeService
from nodo360.services.shares.broadcast import BroadcastService
from nodo360.services.shares.certificates import CertificateService
from nodo360.services.shares.gamification import GamificationService
from nodo360.services.shares.mailer import MailerService, get_mailer_service


class CourseProgressService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        gamification: GamificationService = Depends(GamificationService),
        mailer: MailerService = Depends(get_mailer_service),
        broadcast: BroadcastService = Depends(BroadcastService),
        certificates: CertificateService = Depends(CertificateService),
        badges: BadgeService = Depends(BadgeService),
    ):
        self.db = db
        self.gamification = gamification
        self.mailer = mailer
        self.broadcast = broadcast
        self.certificates = certificates
        self.badges = badges

    async def complete_course_async(self, course_id: uuid.UUID, user: User):
        return await self.complete_for_user(course_id, user.id, user.email, user.full_name)

    async def _issue_certificate(
        self, user_id: uuid.UUID, course_id: uuid.UUID, certifiable: bool
    ) -> Optional[dict]:
        if not certifiable:
            return None
        try:
            result = await self.certificates.issue_for_course(user_id, course_id)
            return result["certificate"]
        except Exception:
            await self.db.rollback()
            logger.exception("❌ [progress] Error emitiendo certificado para {}", short_id(user_id))
            return None

    async def complete_for_user(
        self,
        course_id: uuid.UUID,
        user_id: uuid.UUID,
        email: str,
        full_name: Optional[str] = None,
    ):
        """
        Marca el curso como completado (idempotente).
        Solo la primera vez: XP course_completed, badges, email y broadcast.
        El certificado se emite (o recupera) siempre que el curso sea certificable.
        """
        try:
            course = await self.db.get(Courses, course_id)
            if not course:
                raise HTTPException(404, "Curso no encontrado")

            enrollment = await self.db.scalar(
                select(CourseEnrollments).where(
                    CourseEnrollments.user_id == user_id,
                    CourseEnrollments.course_id == course_id,
                )
            )
            if not enrollment:
                raise HTTPException(400, "No estás inscrito en este curso")

            # Valores planos: un rollback posterior expira las instancias ORM
            course_title, course_slug = course.title, course.slug
            certifiable = course.is_certifiable

            if enrollment.completed_at:
                completed_at = enrollment.completed_at
                return {
                    "success": True,
                    "alreadyCompleted": True,
                    "completedAt": completed_at,
                    "xp": None,
                    "certificate": await self._issue_certificate(user_id, course_id, certifiable),
                    "awardedBadges": [],
                }

            enrollment.completed_at = get_now()
            enrollment.progress_percentage = 100
            completed_at = enrollment.completed_at
            await self.db.commit()
            logger.info("🏆 [progress] {} completó {}", short_id(user_id), course_slug)

        except HTTPException:
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [progress] Error completando curso: {}", e)
            raise HTTPException(500, "Error al completar el curso")

        user_name = full_name or "Estudiante"

        # La finalización ya está confirmada; la XP es best-effort
        try:
            xp = await self.gamification.award_xp(
                user_id, "course_completed", description=f"Curso completado: {course_title}"
            )
        except Exception:
            await self.db.rollback()
            logger.exception("❌ [progress] Error otorgando XP de curso a {}", short_id(user_id))
            xp = None

        certificate = await self._issue_certificate(user_id, course_id, certifiable)
        awarded = await self.badges.check_and_award(user_id, "course_completed")

        await self.mailer.send_course_completed_email(email, user_name, course_title)
        await self.broadcast.course_completed(user_id, user_name, course_title)

        return {
            "success": True,
            "alreadyCompleted": False,
            "completedAt": completed_at,
            "xp": xp,
            "certificate": certificate,
            "awardedBadges": awarded,
        }
