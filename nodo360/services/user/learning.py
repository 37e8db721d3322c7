# nodo360/services/user/learning.py
import uuid
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from fastapi import Depends, HTTPException
from fastapi.responses import JSONResponse, RedirectResponse
from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.core.logging import short_id
from nodo360.db.models.database import (
    CourseEnrollments,
    Courses,
    Lessons,
    Modules,
    QuizAttempts,
    User,
    UserProgress,
)
from nodo360.db.session import get_session
from nodo360.db.upsert import upsert_stmt
from nodo360.libs.formats.datetime import now as get_now
from nodo360.schemas.user.learning import CompleteLessonSchema, NextLessonSchema
from nodo360.services.shares.badges import BadgeService
from nodo360.services.shares.entitlements import EntitlementService
from nodo360.services.shares.gamification import GamificationService
from nodo360.services.user.progress import CourseProgressService

PASSING_SCORE = 70

LOCKED_MESSAGES = {
    "premium_required": "Este curso requiere acceso premium",
    "quiz_not_passed": "Debes aprobar el quiz del módulo anterior",
    "previous_lesson_incomplete": "Completa la lección anterior primero",
}


def locked_message(access: Dict[str, Any]) -> str:
    reason = access.get("moduleReason") or access.get("reason")
    return LOCKED_MESSAGES.get(reason, "Contenido bloqueado")


class LearningService:
    """
    Recorrido del alumno por un curso: acceso secuencial a módulos y
    lecciones, progreso por lección, siguiente lección y "continuar".

    Reglas de acceso:
    - el primer módulo del curso siempre está abierto
    - el resto exige acceso premium si el curso lo es y, si el módulo
      anterior tiene quiz obligatorio, haberlo aprobado (>= 70)
    - dentro de un módulo, cada lección exige la anterior completada
    """

    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        entitlements: EntitlementService = Depends(EntitlementService),
        gamification: GamificationService = Depends(GamificationService),
        badges: BadgeService = Depends(BadgeService),
        progress: CourseProgressService = Depends(CourseProgressService),
    ):
        self.db = db
        self.entitlements = entitlements
        self.gamification = gamification
        self.badges = badges
        self.progress = progress

    # ==============================
    # 🔍 CONSULTAS
    # ==============================

    async def _get_enrollment(self, user_id: uuid.UUID, course_id: uuid.UUID):
        return await self.db.scalar(
            select(CourseEnrollments).where(
                CourseEnrollments.user_id == user_id,
                CourseEnrollments.course_id == course_id,
            )
        )

    async def _ordered_lessons(self, course_id: uuid.UUID):
        """Lecciones del curso en orden de módulo → lección."""
        return (
            await self.db.execute(
                select(Lessons.id, Lessons.slug, Lessons.title, Lessons.module_id)
                .join(Modules, Modules.id == Lessons.module_id)
                .where(Modules.course_id == course_id)
                .order_by(Modules.order_index, Lessons.order_index)
            )
        ).all()

    async def completed_lesson_ids(self, user_id: uuid.UUID, lesson_ids: List[uuid.UUID]):
        if not lesson_ids:
            return set()
        return set(
            (
                await self.db.scalars(
                    select(UserProgress.lesson_id).where(
                        UserProgress.user_id == user_id,
                        UserProgress.is_completed.is_(True),
                        UserProgress.lesson_id.in_(lesson_ids),
                    )
                )
            ).all()
        )

    async def has_passed_quiz(self, user_id: uuid.UUID, module_id: uuid.UUID) -> bool:
        found = await self.db.scalar(
            select(QuizAttempts.id)
            .where(
                QuizAttempts.user_id == user_id,
                QuizAttempts.module_id == module_id,
                QuizAttempts.passed.is_(True),
            )
            .limit(1)
        )
        return found is not None

    # ==============================
    # 🔐 ACCESO
    # ==============================

    async def check_module_access(self, user_id: uuid.UUID, module: Modules) -> Dict[str, Any]:
        course = await self.db.get(Courses, module.course_id)
        modules = (
            await self.db.execute(
                select(Modules.id, Modules.requires_quiz)
                .where(Modules.course_id == module.course_id)
                .order_by(Modules.order_index)
            )
        ).all()
        position = next(i for i, m in enumerate(modules) if m.id == module.id)

        if position == 0:
            return {"canAccess": True, "reason": "first_module"}

        if course.is_premium and not await self.entitlements.has_entitlement(user_id, course.id):
            return {"canAccess": False, "reason": "premium_required"}

        previous = modules[position - 1]
        base = {"previousModuleId": str(previous.id)}
        if not previous.requires_quiz:
            return {"canAccess": True, "reason": "no_quiz_required", **base}
        if await self.has_passed_quiz(user_id, previous.id):
            return {"canAccess": True, "reason": "quiz_passed", **base}
        return {
            "canAccess": False,
            "reason": "quiz_not_passed",
            "requiredScore": PASSING_SCORE,
            **base,
        }

    async def check_lesson_access(self, user_id: uuid.UUID, lesson: Lessons) -> Dict[str, Any]:
        module = await self.db.get(Modules, lesson.module_id)
        module_access = await self.check_module_access(user_id, module)
        if not module_access["canAccess"]:
            return {
                "canAccess": False,
                "reason": "module_locked",
                "moduleReason": module_access["reason"],
                "requiredScore": module_access.get("requiredScore"),
            }

        previous = await self.db.scalar(
            select(Lessons)
            .where(Lessons.module_id == lesson.module_id, Lessons.order_index < lesson.order_index)
            .order_by(Lessons.order_index.desc())
            .limit(1)
        )
        if not previous:
            return {"canAccess": True, "reason": "accessible"}

        if await self.completed_lesson_ids(user_id, [previous.id]):
            return {"canAccess": True, "reason": "accessible"}

        return {
            "canAccess": False,
            "reason": "previous_lesson_incomplete",
            "previousLessonId": str(previous.id),
            "previousLessonTitle": previous.title,
        }

    async def get_lesson_access_async(self, lesson_id: uuid.UUID, user: User):
        lesson = await self.db.get(Lessons, lesson_id)
        if not lesson:
            raise HTTPException(404, "Lección no encontrada")
        return await self.check_lesson_access(user.id, lesson)

    # ==============================
    # ✅ PROGRESO
    # ==============================

    async def _mark_completed(
        self, user_id: uuid.UUID, course_id: uuid.UUID, lesson_id: uuid.UUID
    ) -> Dict[str, Any]:
        """Upsert en user_progress y porcentaje recalculado en la inscripción (sin commit)."""
        already = await self.db.scalar(
            select(UserProgress.is_completed).where(
                UserProgress.user_id == user_id, UserProgress.lesson_id == lesson_id
            )
        )

        # Repetir solo refresca updated_at (lo usa "continuar")
        now = get_now()
        await self.db.execute(
            upsert_stmt(
                self.db,
                UserProgress,
                {
                    "id": uuid.uuid4(),
                    "user_id": user_id,
                    "lesson_id": lesson_id,
                    "is_completed": True,
                    "completed_at": now,
                    "created_at": now,
                    "updated_at": now,
                },
                conflict_cols=["user_id", "lesson_id"],
                update_cols=(
                    ["updated_at"] if already else ["is_completed", "completed_at", "updated_at"]
                ),
            )
        )

        course_lessons = (
            select(Lessons.id)
            .join(Modules, Modules.id == Lessons.module_id)
            .where(Modules.course_id == course_id)
        )
        total = await self.db.scalar(select(func.count()).select_from(course_lessons.subquery()))
        completed = await self.db.scalar(
            select(func.count())
            .select_from(UserProgress)
            .where(
                UserProgress.user_id == user_id,
                UserProgress.is_completed.is_(True),
                UserProgress.lesson_id.in_(course_lessons),
            )
        )
        total, completed = total or 0, completed or 0
        # Redondeo hacia abajo: el 100 % solo con todas las lecciones hechas
        percentage = completed * 100 // total if total else 0

        await self.db.execute(
            update(CourseEnrollments)
            .where(
                CourseEnrollments.user_id == user_id,
                CourseEnrollments.course_id == course_id,
            )
            .values(progress_percentage=percentage, last_accessed_at=now)
        )
        return {
            "firstCompletion": not already,
            "completedLessons": completed,
            "totalLessons": total,
            "percentage": percentage,
        }

    async def _reward_lesson(
        self, user_id: uuid.UUID, lesson_title: str, first_completion: bool
    ) -> Tuple[Optional[dict], List[dict]]:
        """XP y badges solo la primera vez; nunca deshace el progreso guardado."""
        if not first_completion:
            return None, []
        try:
            xp = await self.gamification.award_xp(
                user_id, "lesson_completed", description=f"Lección completada: {lesson_title}"
            )
        except Exception:
            await self.db.rollback()
            logger.exception("❌ [learning] Error otorgando XP de lección a {}", short_id(user_id))
            xp = None
        awarded = await self.badges.check_and_award(user_id, "lesson_completed")
        return xp, awarded

    async def finish_course(
        self,
        user_id: uuid.UUID,
        email: str,
        full_name: Optional[str],
        course_id: uuid.UUID,
        course_slug: str,
    ) -> Dict[str, Any]:
        last_module = await self.db.scalar(
            select(Modules)
            .where(Modules.course_id == course_id)
            .order_by(Modules.order_index.desc())
            .limit(1)
        )
        if (
            last_module
            and last_module.requires_quiz
            and not await self.has_passed_quiz(user_id, last_module.id)
        ):
            return {
                "status": "NEEDS_FINAL_QUIZ",
                "redirectTo": f"/cursos/{course_slug}/quiz-final",
                "message": "Debes aprobar el quiz final para obtener el certificado",
                "moduleId": str(last_module.id),
                "moduleTitle": last_module.title,
            }

        result = await self.progress.complete_for_user(course_id, user_id, email, full_name)
        certificate = result.get("certificate")
        code = certificate["certificate_number"] if certificate else None
        return {
            "status": "COURSE_COMPLETED",
            "redirectTo": f"/certificados/{code}" if code else f"/cursos/{course_slug}",
            "certificateCode": code,
            "courseXp": result.get("xp"),
            "courseBadges": result.get("awardedBadges", []),
        }

    async def _complete(
        self, user_id: uuid.UUID, course: Courses, lesson: Lessons
    ) -> Dict[str, Any]:
        """Inscripción + acceso + progreso, en una sola transacción."""
        try:
            if not await self._get_enrollment(user_id, course.id):
                raise HTTPException(400, "No estás inscrito en este curso")

            access = await self.check_lesson_access(user_id, lesson)
            if not access["canAccess"]:
                raise HTTPException(403, locked_message(access))

            progress = await self._mark_completed(user_id, course.id, lesson.id)
            await self.db.commit()
            logger.info(
                "📗 [learning] {} completó lección {} ({}%)",
                short_id(user_id),
                lesson.slug,
                progress["percentage"],
            )
            return progress

        except HTTPException:
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [learning] Error guardando progreso: {}", e)
            raise HTTPException(500, "No se pudo actualizar el progreso de la lección")

    async def complete_lesson_async(self, schema: CompleteLessonSchema, user: User):
        user_id, email, full_name = user.id, user.email, user.full_name

        course = await self.db.get(Courses, schema.course_id)
        if not course:
            raise HTTPException(404, "Curso no encontrado")
        lesson = await self.db.scalar(
            select(Lessons)
            .join(Modules, Modules.id == Lessons.module_id)
            .where(Lessons.id == schema.lesson_id, Modules.course_id == course.id)
        )
        if not lesson:
            raise HTTPException(404, "Lección no encontrada en este curso")

        course_id, course_slug, lesson_title = course.id, course.slug, lesson.title
        progress = await self._complete(user_id, course, lesson)

        xp, awarded = await self._reward_lesson(user_id, lesson_title, progress["firstCompletion"])

        completion = None
        if progress["totalLessons"] and progress["completedLessons"] == progress["totalLessons"]:
            completion = await self.finish_course(user_id, email, full_name, course_id, course_slug)

        return {
            "success": True,
            **progress,
            "xp": xp,
            "awardedBadges": awarded,
            "courseCompletion": completion,
        }

    async def next_lesson_async(self, schema: NextLessonSchema, user: User):
        """
        Completa la lección actual y decide a dónde ir:
        NEXT_LESSON, NEEDS_FINAL_QUIZ o COURSE_COMPLETED.
        """
        user_id, email, full_name = user.id, user.email, user.full_name

        course = await self.db.scalar(select(Courses).where(Courses.slug == schema.course_slug))
        if not course:
            raise HTTPException(404, "Curso no encontrado")

        lessons = await self._ordered_lessons(course.id)
        if not lessons:
            raise HTTPException(400, "Sin lecciones configuradas para este curso")

        index = next(
            (i for i, row in enumerate(lessons) if row.slug == schema.lesson_slug), None
        )
        if index is None:
            raise HTTPException(400, "Lección actual no encontrada en el curso")

        course_id, course_slug = course.id, course.slug
        current = await self.db.get(Lessons, lessons[index].id)
        progress = await self._complete(user_id, course, current)
        xp, awarded = await self._reward_lesson(
            user_id, lessons[index].title, progress["firstCompletion"]
        )
        base = {"success": True, "percentage": progress["percentage"], "xp": xp, "awardedBadges": awarded}

        # 1️⃣ Hay una lección siguiente en orden
        if index + 1 < len(lessons):
            target = lessons[index + 1].slug
            return {**base, "status": "NEXT_LESSON", "redirectTo": f"/cursos/{course_slug}/{target}"}

        # 2️⃣ Última lección pero quedan huecos atrás → la primera pendiente
        done = await self.completed_lesson_ids(user_id, [row.id for row in lessons])
        pending = next((row for row in lessons if row.id not in done), None)
        if pending:
            return {
                **base,
                "status": "NEXT_LESSON",
                "redirectTo": f"/cursos/{course_slug}/{pending.slug}",
            }

        # 3️⃣ Todo completado → quiz final o fin de curso
        logger.info("🎉 [learning] {} terminó las lecciones de {}", short_id(user_id), course_slug)
        completion = await self.finish_course(user_id, email, full_name, course_id, course_slug)
        return {**base, **completion}

    # ==============================
    # ▶️ CONTINUAR
    # ==============================

    async def continue_async(self, course_slug: Optional[str], as_json: bool, user: Optional[User]):
        """Botón "Continuar": última lección tocada o la primera del curso."""

        def finish(destination: str, reason: Optional[str] = None, **extra):
            if as_json:
                body = {"ok": reason is None, "redirect": destination, **extra}
                if reason:
                    body["reason"] = reason
                return JSONResponse(body)
            return RedirectResponse(destination, status_code=302)

        if not course_slug:
            if as_json:
                return JSONResponse({"ok": False, "error": "courseSlug requerido"}, status_code=400)
            return RedirectResponse("/cursos", status_code=302)

        landing = f"/cursos/{quote(course_slug)}"
        if not user:
            return finish(f"/login?redirect={landing}", "no_auth")

        course = await self.db.scalar(select(Courses).where(Courses.slug == course_slug))
        if not course:
            return finish(landing, "course_not_found")
        if course.status == "archived":
            return finish(landing, "course_archived")
        if not await self._get_enrollment(user.id, course.id):
            return finish(landing, "not_enrolled")

        has_modules = await self.db.scalar(
            select(Modules.id).where(Modules.course_id == course.id).limit(1)
        )
        if not has_modules:
            return finish(landing, "no_modules")

        lessons = await self._ordered_lessons(course.id)
        if not lessons:
            return finish(landing, "no_lessons")

        last_lesson_id = await self.db.scalar(
            select(UserProgress.lesson_id)
            .where(
                UserProgress.user_id == user.id,
                UserProgress.lesson_id.in_([row.id for row in lessons]),
            )
            .order_by(UserProgress.updated_at.desc())
            .limit(1)
        )
        target = next((row for row in lessons if row.id == last_lesson_id), lessons[0])

        return finish(
            f"{landing}/{target.slug}",
            data={
                "courseSlug": course_slug,
                "lessonSlug": target.slug,
                "hasProgress": last_lesson_id is not None,
            },
        )
