# nodo360/services/admin/course_review.py
import uuid

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from nodo360.core.logging import short_id
from nodo360.db.models.database import Courses, User
from nodo360.db.session import get_session
from nodo360.libs.formats.datetime import now as get_now
from nodo360.schemas.admin.course_review import CourseReviewSchema
from nodo360.schemas.shares.notification import NotificationCreateSchema
from nodo360.services.shares.broadcast import BroadcastService
from nodo360.services.shares.mailer import MailerService, get_mailer_service
from nodo360.services.shares.notification import NotificationService


class CourseReviewService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        mailer: MailerService = Depends(get_mailer_service),
        notifications: NotificationService = Depends(NotificationService),
        broadcast: BroadcastService = Depends(BroadcastService),
    ):
        self.db = db
        self.mailer = mailer
        self.notifications = notifications
        self.broadcast = broadcast

    async def get_pending_courses_async(self):
        courses = (
            await self.db.scalars(
                select(Courses)
                .options(selectinload(Courses.instructor))
                .where(Courses.status == "pending_review")
                .order_by(Courses.updated_at.asc())
            )
        ).all()
        return {
            "success": True,
            "data": [
                {
                    "id": str(c.id),
                    "slug": c.slug,
                    "title": c.title,
                    "level": c.level,
                    "total_modules": c.total_modules,
                    "total_lessons": c.total_lessons,
                    "updated_at": c.updated_at,
                    "instructor": {
                        "id": str(c.instructor.id),
                        "full_name": c.instructor.full_name,
                        "email": c.instructor.email,
                    }
                    if c.instructor
                    else None,
                }
                for c in courses
            ],
        }

    async def review_course_async(
        self, course_id: uuid.UUID, schema: CourseReviewSchema, reviewer: User
    ):
        """
        approve → published (+ published_at)
        request_changes → vuelve a draft; comentario obligatorio (≥10)
        El instructor recibe email + notificación in-app (best-effort);
        al aprobar se anuncia el curso a la comunidad.
        """
        comment = (schema.comment or "").strip()
        if schema.action == "request_changes" and len(comment) < 10:
            raise HTTPException(
                400,
                "El comentario es obligatorio al solicitar cambios (mínimo 10 caracteres)",
            )

        try:
            course = await self.db.scalar(
                select(Courses)
                .options(selectinload(Courses.instructor))
                .where(Courses.id == course_id)
            )
            if not course:
                raise HTTPException(404, "Curso no encontrado")
            if course.status != "pending_review":
                raise HTTPException(400, "Este curso no está pendiente de revisión")

            if schema.action == "approve":
                course.status = "published"
                course.published_at = get_now()
            else:
                course.status = "draft"
            await self.db.commit()

            logger.info(
                "✅ [course-review] {} → {} (por {})",
                course.slug,
                course.status,
                short_id(reviewer.id),
            )
        except HTTPException:
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [course-review] Error revisando curso: {}", e)
            raise HTTPException(500, "Error interno del servidor")

        instructor = course.instructor
        if instructor:
            await self._notify_instructor(course, instructor, schema.action, comment)
        if schema.action == "approve":
            await self.broadcast.new_course(course.title, course.slug)

        return {
            "success": True,
            "status": course.status,
            "message": "Curso aprobado" if schema.action == "approve" else "Cambios solicitados",
        }

    async def _notify_instructor(
        self, course: Courses, instructor: User, action: str, comment: str
    ):
        if action == "approve":
            await self.mailer.send_course_approved_email(
                instructor.email, instructor.full_name, course.title, course.slug
            )
            notification = NotificationCreateSchema(
                user_id=instructor.id,
                type="course_approved",
                title="🎉 ¡Curso aprobado!",
                message=f'Tu curso "{course.title}" ha sido aprobado y publicado.',
                link=f"/cursos/{course.slug}",
            )
        else:
            await self.mailer.send_course_changes_requested_email(
                instructor.email, instructor.full_name, course.title, comment
            )
            notification = NotificationCreateSchema(
                user_id=instructor.id,
                type="course_changes_requested",
                title="📝 Cambios solicitados",
                message=f'Tu curso "{course.title}" necesita algunos cambios.',
                link="/dashboard/instructor/cursos",
            )
        await self.notifications.create_notification_async(notification)
