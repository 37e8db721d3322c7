# nodo360/services/user/quiz.py
import uuid

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.core.logging import short_id
from nodo360.db.models.database import (
    CourseEnrollments,
    Courses,
    Lessons,
    Modules,
    QuizAttempts,
    QuizQuestions,
    User,
)
from nodo360.db.session import get_session
from nodo360.schemas.user.quiz import SubmitQuizSchema
from nodo360.services.shares.badges import BadgeService
from nodo360.services.shares.gamification import GamificationService
from nodo360.services.user.learning import PASSING_SCORE, LearningService, locked_message


class QuizService:
    """Quizzes de módulo: la nota se calcula en servidor, nunca se acepta del cliente."""

    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        learning: LearningService = Depends(LearningService),
        gamification: GamificationService = Depends(GamificationService),
        badges: BadgeService = Depends(BadgeService),
    ):
        self.db = db
        self.learning = learning
        self.gamification = gamification
        self.badges = badges

    async def _questions(self, module_id: uuid.UUID):
        return (
            await self.db.scalars(
                select(QuizQuestions)
                .where(QuizQuestions.module_id == module_id)
                .order_by(QuizQuestions.order_index)
            )
        ).all()

    async def get_quiz_async(self, module_id: uuid.UUID, user: User):
        module = await self.db.get(Modules, module_id)
        if not module:
            raise HTTPException(404, "Módulo no encontrado")

        questions = await self._questions(module_id)
        return {
            "moduleId": str(module.id),
            "moduleTitle": module.title,
            "passingScore": PASSING_SCORE,
            "passed": await self.learning.has_passed_quiz(user.id, module_id),
            # Sin correct_answer ni explicación: se revelan al corregir
            "questions": [
                {
                    "id": str(q.id),
                    "question": q.question,
                    "options": q.options,
                    "order_index": q.order_index,
                }
                for q in questions
            ],
        }

    async def submit_quiz_async(self, schema: SubmitQuizSchema, user: User):
        user_id, email, full_name = user.id, user.email, user.full_name

        try:
            # 1️⃣ Módulo, curso e inscripción
            module = await self.db.get(Modules, schema.module_id)
            if not module:
                raise HTTPException(404, "Módulo no encontrado")
            course = await self.db.get(Courses, module.course_id)

            enrolled = await self.db.scalar(
                select(CourseEnrollments.id).where(
                    CourseEnrollments.user_id == user_id,
                    CourseEnrollments.course_id == course.id,
                )
            )
            if not enrolled:
                raise HTTPException(400, "No estás inscrito en este curso")

            access = await self.learning.check_module_access(user_id, module)
            if not access["canAccess"]:
                raise HTTPException(403, locked_message(access))

            questions = await self._questions(module.id)
            if not questions:
                raise HTTPException(400, "Este módulo no tiene quiz")

            # 2️⃣ Corrección en servidor
            already_passed = await self.learning.has_passed_quiz(user_id, module.id)
            graded = [
                {
                    "question_id": str(q.id),
                    "selected_answer": schema.answers.get(q.id),
                    "correct": schema.answers.get(q.id) == q.correct_answer,
                    "explanation": q.explanation,
                }
                for q in questions
            ]
            correct = sum(1 for g in graded if g["correct"])
            total = len(questions)
            score = correct * 100 // total
            passed = score >= PASSING_SCORE

            attempt = QuizAttempts(
                user_id=user_id,
                module_id=module.id,
                score=score,
                total_questions=total,
                correct_answers=correct,
                passed=passed,
                answers=[{k: v for k, v in g.items() if k != "explanation"} for g in graded],
            )
            self.db.add(attempt)
            await self.db.commit()

            attempt_id = attempt.id
            module_id, module_title = module.id, module.title
            course_id, course_slug = course.id, course.slug
            logger.info(
                "📝 [quiz] {} sacó {} en {} ({})",
                short_id(user_id),
                score,
                module_title,
                "aprobado" if passed else "suspenso",
            )

        except HTTPException:
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [quiz] Error guardando intento: {}", e)
            raise HTTPException(500, "Error guardando resultado del quiz")

        # 3️⃣ XP solo en el primer aprobado del módulo
        xp_awarded = 0
        if passed and not already_passed:
            try:
                result = await self.gamification.award_xp(
                    user_id, "quiz_passed", description=f"Quiz aprobado: {module_title}"
                )
                xp_awarded += result["xpAwarded"]
                if score == 100:
                    result = await self.gamification.award_xp(
                        user_id, "perfect_score", description=f"Puntuación perfecta: {module_title}"
                    )
                    xp_awarded += result["xpAwarded"]
            except Exception:
                await self.db.rollback()
                logger.exception("❌ [quiz] Error otorgando XP a {}", short_id(user_id))

        awarded = await self.badges.check_and_award(user_id, "quiz_passed")

        # 4️⃣ Quiz final aprobado con todas las lecciones hechas → fin de curso
        completion = None
        if passed and await self._is_final_module(course_id, module_id):
            if await self._all_lessons_completed(user_id, course_id):
                completion = await self.learning.finish_course(
                    user_id, email, full_name, course_id, course_slug
                )

        return {
            "success": True,
            "attemptId": str(attempt_id),
            "score": score,
            "passed": passed,
            "passingScore": PASSING_SCORE,
            "correctAnswers": correct,
            "totalQuestions": total,
            "results": graded,
            "xpAwarded": xp_awarded,
            "awardedBadges": awarded,
            "courseCompletion": completion,
            "certificate": (completion or {}).get("certificateCode"),
        }

    async def _is_final_module(self, course_id: uuid.UUID, module_id: uuid.UUID) -> bool:
        last_id = await self.db.scalar(
            select(Modules.id)
            .where(Modules.course_id == course_id)
            .order_by(Modules.order_index.desc())
            .limit(1)
        )
        return last_id == module_id

    async def _all_lessons_completed(self, user_id: uuid.UUID, course_id: uuid.UUID) -> bool:
        lesson_ids = (
            await self.db.scalars(
                select(Lessons.id)
                .join(Modules, Modules.id == Lessons.module_id)
                .where(Modules.course_id == course_id)
            )
        ).all()
        done = await self.learning.completed_lesson_ids(user_id, list(lesson_ids))
        return bool(lesson_ids) and len(done) == len(lesson_ids)
