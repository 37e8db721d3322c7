# nodo360/services/admin/reorder.py
import uuid
from typing import Sequence, Type

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.core.deps import ADMIN
from nodo360.db.models.database import Courses, Lessons, Modules, User
from nodo360.db.session import get_session
from nodo360.schemas.admin.reorder import ReorderLessonSchema, ReorderModuleSchema

# Valor que nunca es un índice válido: libera el hueco durante el intercambio
SENTINEL_INDEX = -1


class ReorderService:
    """
    Mueve lecciones / módulos una posición arriba o abajo.

    El intercambio se hace con 3 UPDATE secuenciales para no violar
    UNIQUE(padre, order_index):
      1) actual → SENTINEL_INDEX
      2) vecino → índice del actual
      3) actual → índice del vecino
    No hay transacción que cubra los 3 pasos; si falla el paso 2 se intenta
    deshacer el paso 1.
    """

    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def _ensure_can_edit(self, course_id: uuid.UUID, user: User) -> Courses:
        course = await self.db.get(Courses, course_id)
        if not course:
            raise HTTPException(404, "Curso no encontrado")
        if user.role != ADMIN and course.instructor_id != user.id:
            raise HTTPException(403, "No eres el instructor de este curso")
        return course

    async def _set_order(self, model: Type[Lessons] | Type[Modules], item_id, value: int):
        await self.db.execute(
            update(model).where(model.id == item_id).values(order_index=value)
        )
        await self.db.commit()

    async def _swap(
        self,
        model: Type[Lessons] | Type[Modules],
        items: Sequence[Lessons] | Sequence[Modules],
        item_id: uuid.UUID,
        direction: str,
        label: str,
    ) -> dict:
        ids = [i.id for i in items]
        if item_id not in ids:
            raise HTTPException(404, f"{label} no encontrado")

        idx = ids.index(item_id)
        neighbor_idx = idx - 1 if direction == "up" else idx + 1
        if neighbor_idx < 0 or neighbor_idx >= len(items):
            raise HTTPException(
                400,
                f"No se puede mover {'arriba' if direction == 'up' else 'abajo'}: "
                "ya está en el extremo",
            )

        current, neighbor = items[idx], items[neighbor_idx]
        current_id, neighbor_id = current.id, neighbor.id
        current_order, neighbor_order = current.order_index, neighbor.order_index

        # 1️⃣ actual → centinela
        try:
            await self._set_order(model, current_id, SENTINEL_INDEX)
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [reorder] Paso 1 falló ({}): {}", label, e)
            raise HTTPException(500, f"Error al reordenar: {e}")

        # 2️⃣ vecino → posición del actual
        try:
            await self._set_order(model, neighbor_id, current_order)
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [reorder] Paso 2 falló ({}), deshaciendo paso 1: {}", label, e)
            try:
                await self._set_order(model, current_id, current_order)
            except Exception as undo_error:
                await self.db.rollback()
                logger.error("❌ [reorder] No se pudo deshacer el paso 1: {}", undo_error)
            raise HTTPException(500, f"Error al reordenar: {e}")

        # 3️⃣ actual → posición del vecino
        try:
            await self._set_order(model, current_id, neighbor_order)
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [reorder] Paso 3 falló ({}): {}", label, e)
            raise HTTPException(500, f"Error al reordenar: {e}")

        return {
            "newOrderIndex": neighbor_order,
            "swappedWith": str(neighbor_id),
        }

    async def reorder_lesson_async(self, schema: ReorderLessonSchema, user: User):
        module = await self.db.get(Modules, schema.module_id)
        if not module:
            raise HTTPException(404, "Módulo no encontrado")
        await self._ensure_can_edit(module.course_id, user)

        lessons = (
            await self.db.scalars(
                select(Lessons)
                .where(Lessons.module_id == schema.module_id)
                .order_by(Lessons.order_index)
            )
        ).all()

        result = await self._swap(
            Lessons, lessons, schema.lesson_id, schema.direction, "Lección"
        )
        logger.info(
            "✅ [reorder] Lección {} movida {} (módulo {})",
            schema.lesson_id,
            schema.direction,
            schema.module_id,
        )
        return {"success": True, "lessonId": str(schema.lesson_id), **result}

    async def reorder_module_async(self, schema: ReorderModuleSchema, user: User):
        await self._ensure_can_edit(schema.course_id, user)

        modules = (
            await self.db.scalars(
                select(Modules)
                .where(Modules.course_id == schema.course_id)
                .order_by(Modules.order_index)
            )
        ).all()

        result = await self._swap(
            Modules, modules, schema.module_id, schema.direction, "Módulo"
        )
        logger.info(
            "✅ [reorder] Módulo {} movido {} (curso {})",
            schema.module_id,
            schema.direction,
            schema.course_id,
        )
        return {"success": True, "moduleId": str(schema.module_id), **result}
