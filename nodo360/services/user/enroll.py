# nodo360/services/user/enroll.py
import uuid
from typing import Optional
from urllib.parse import quote

from fastapi import Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.core.logging import short_id
from nodo360.db.models.database import CourseEnrollments, Courses, User
from nodo360.db.session import get_session
from nodo360.libs.formats.datetime import now as get_now
from nodo360.services.shares.entitlements import EntitlementService
from nodo360.services.shares.referral import ReferralService


def safe_redirect_target(value: Optional[str]) -> Optional[str]:
    """Solo rutas relativas del propio sitio ("/x"), nunca "//host" ni URLs absolutas."""
    if value and value.startswith("/") and not value.startswith("//"):
        return value
    return None


class EnrollService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        entitlements: EntitlementService = Depends(EntitlementService),
        referral: ReferralService = Depends(ReferralService),
    ):
        self.db = db
        self.entitlements = entitlements
        self.referral = referral

    async def _get_enrollment(self, user_id: uuid.UUID, course_id: uuid.UUID):
        return await self.db.scalar(
            select(CourseEnrollments).where(
                CourseEnrollments.user_id == user_id,
                CourseEnrollments.course_id == course_id,
            )
        )

    async def _check_access(self, course: Courses, user: User) -> None:
        if course.is_premium and not await self.entitlements.has_entitlement(
            user.id, course.id
        ):
            raise HTTPException(403, "Este curso requiere acceso premium")

    async def _create_enrollment(self, user: User, course: Courses) -> CourseEnrollments:
        enrollment = CourseEnrollments(
            user_id=user.id,
            course_id=course.id,
            progress_percentage=0,
            enrolled_at=get_now(),
        )
        self.db.add(enrollment)
        await self.db.commit()
        await self.db.refresh(enrollment)
        logger.info(
            "✅ [enroll] {} inscrito en {}", short_id(user.id), course.slug
        )
        return enrollment

    @staticmethod
    def _serialize(enrollment: CourseEnrollments) -> dict:
        return {
            "id": str(enrollment.id),
            "user_id": str(enrollment.user_id),
            "course_id": str(enrollment.course_id),
            "enrolled_at": enrollment.enrolled_at,
            "progress_percentage": enrollment.progress_percentage,
        }

    async def enroll_async(self, course_id: uuid.UUID, user: User, request: Request):
        """Devuelve (payload, creado)."""
        try:
            # 1️⃣ Curso existente y publicado
            course = await self.db.get(Courses, course_id)
            if not course:
                raise HTTPException(404, "Curso no encontrado")
            if course.status != "published":
                raise HTTPException(403, "Este curso no está disponible aún")

            # 2️⃣ Ya inscrito → idempotente
            existing = await self._get_enrollment(user.id, course_id)
            if existing:
                logger.info("ℹ️ [enroll] {} ya inscrito en {}", short_id(user.id), course.slug)
                return (
                    {
                        "data": self._serialize(existing),
                        "alreadyEnrolled": True,
                        "message": "Ya estás inscrito en este curso",
                    },
                    False,
                )

            # 3️⃣ Premium → entitlement
            await self._check_access(course, user)

            enrollment = await self._create_enrollment(user, course)

        except HTTPException:
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [enroll] Error al inscribir: {}", e)
            raise HTTPException(500, f"Error al inscribirse: {e}")

        # 4️⃣ Atribución de referido (best-effort)
        await self.referral.track_conversion(request, user.id, course)

        return (
            {
                "data": self._serialize(enrollment),
                "alreadyEnrolled": False,
                "message": f'¡Te has inscrito exitosamente en "{course.title}"!',
            },
            True,
        )

    async def unenroll_async(self, course_id: uuid.UUID, user: User):
        try:
            result = await self.db.execute(
                delete(CourseEnrollments).where(
                    CourseEnrollments.user_id == user.id,
                    CourseEnrollments.course_id == course_id,
                )
            )
            await self.db.commit()
            if result.rowcount == 0:
                raise HTTPException(400, "No estás inscrito en este curso")

            logger.info("✅ [enroll] {} desinscrito de {}", short_id(user.id), course_id)
            return {"success": True, "message": "Te has desinscrito del curso exitosamente"}

        except HTTPException:
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [enroll] Error al desinscribir: {}", e)
            raise HTTPException(500, "Error interno del servidor")

    async def enroll_redirect_async(
        self,
        course_id: Optional[str],
        redirect: Optional[str],
        as_json: bool,
        user: Optional[User],
        request: Request,
    ):
        """Inscripción por enlace (GET): siempre termina en redirección (o JSON de depuración)."""

        def finish(destination: str, **extra):
            if as_json:
                return JSONResponse({"ok": "reason" not in extra, "redirect": destination, **extra})
            return RedirectResponse(destination, status_code=302)

        # 1️⃣ courseId válido
        try:
            course_uuid = uuid.UUID(course_id) if course_id else None
        except ValueError:
            course_uuid = None
        if not course_uuid:
            if as_json:
                return JSONResponse({"ok": False, "error": "courseId requerido"}, status_code=400)
            return RedirectResponse("/cursos", status_code=302)

        # 2️⃣ Anónimo → login con vuelta a esta misma URL
        if not user:
            current = request.url.path + (f"?{request.url.query}" if request.url.query else "")
            return finish(f"/login?redirect={quote(current, safe='')}", reason="no_auth")

        # 3️⃣ Curso publicado
        course = await self.db.get(Courses, course_uuid)
        if not course:
            return finish("/cursos", reason="course_not_found")
        if course.status != "published":
            return finish("/cursos", reason="course_not_published")

        # 4️⃣ Inscribir si hace falta
        existing = await self._get_enrollment(user.id, course.id)
        enrolled = False
        if not existing:
            if course.is_premium and not await self.entitlements.has_entitlement(
                user.id, course.id
            ):
                return finish(f"/cursos/{course.slug}", reason="premium_required")
            try:
                await self._create_enrollment(user, course)
                enrolled = True
            except Exception as e:
                await self.db.rollback()
                logger.error("❌ [enroll] Error creando inscripción: {}", e)
            if enrolled:
                await self.referral.track_conversion(request, user.id, course)

        destination = safe_redirect_target(redirect) or f"/cursos/{course.slug}"
        return finish(
            destination,
            enrolled=enrolled,
            alreadyEnrolled=existing is not None,
            courseSlug=course.slug,
        )
