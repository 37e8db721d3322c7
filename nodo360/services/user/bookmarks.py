# nodo360/services/user/bookmarks.py
import uuid

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.core.logging import short_id
from nodo360.db.models.database import Bookmarks, Courses, Lessons, Modules, User
from nodo360.db.session import get_session
from nodo360.db.upsert import upsert_stmt
from nodo360.libs.formats.datetime import now as get_now
from nodo360.schemas.user.bookmarks import CreateBookmarkSchema


class BookmarkService:
    """Lecciones guardadas por el usuario (una fila por usuario + lección)."""

    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def get_bookmarks_async(self, user: User):
        try:
            rows = (
                await self.db.execute(
                    select(
                        Bookmarks.id,
                        Bookmarks.lesson_id,
                        Bookmarks.note,
                        Bookmarks.created_at,
                        Lessons.title.label("lesson_title"),
                        Lessons.slug.label("lesson_slug"),
                        Modules.title.label("module_title"),
                        Courses.title.label("course_title"),
                        Courses.slug.label("course_slug"),
                    )
                    .join(Lessons, Lessons.id == Bookmarks.lesson_id)
                    .join(Modules, Modules.id == Lessons.module_id)
                    .join(Courses, Courses.id == Modules.course_id)
                    .where(Bookmarks.user_id == user.id)
                    .order_by(Bookmarks.created_at.desc())
                )
            ).mappings().all()

            return {"bookmarks": [dict(r) for r in rows], "total": len(rows)}

        except Exception as e:
            logger.error("❌ [bookmarks] Error listando guardados: {}", e)
            raise HTTPException(500, f"Error al obtener las lecciones guardadas: {e}")

    async def is_bookmarked_async(self, lesson_id: uuid.UUID, user: User):
        bookmark = await self.db.scalar(
            select(Bookmarks).where(
                Bookmarks.user_id == user.id, Bookmarks.lesson_id == lesson_id
            )
        )
        return {
            "bookmarked": bookmark is not None,
            "bookmarkId": str(bookmark.id) if bookmark else None,
        }

    async def upsert_bookmark_async(self, schema: CreateBookmarkSchema, user: User):
        try:
            # 1️⃣ La lección debe existir
            lesson = await self.db.get(Lessons, schema.lesson_id)
            if not lesson:
                raise HTTPException(404, "Lección no encontrada")

            # 2️⃣ Upsert sobre (user_id, lesson_id): repetir no duplica
            stmt = upsert_stmt(
                self.db,
                Bookmarks,
                {
                    "id": uuid.uuid4(),
                    "user_id": user.id,
                    "lesson_id": schema.lesson_id,
                    "note": schema.note,
                    "created_at": get_now(),
                },
                conflict_cols=["user_id", "lesson_id"],
                update_cols=["note"],
            )
            await self.db.execute(stmt)
            await self.db.commit()

            bookmark = await self.db.scalar(
                select(Bookmarks)
                .where(
                    Bookmarks.user_id == user.id,
                    Bookmarks.lesson_id == schema.lesson_id,
                )
                .execution_options(populate_existing=True)
            )
            logger.info(
                "🔖 [bookmarks] {} guardó la lección {}", short_id(user.id), schema.lesson_id
            )
            return {
                "success": True,
                "bookmark": {
                    "id": str(bookmark.id),
                    "lesson_id": str(bookmark.lesson_id),
                    "note": bookmark.note,
                    "created_at": bookmark.created_at,
                },
            }

        except HTTPException:
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [bookmarks] Error guardando lección: {}", e)
            raise HTTPException(500, f"Error al guardar la lección: {e}")

    async def delete_bookmark_async(self, lesson_id: uuid.UUID, user: User):
        try:
            await self.db.execute(
                delete(Bookmarks).where(
                    Bookmarks.user_id == user.id, Bookmarks.lesson_id == lesson_id
                )
            )
            await self.db.commit()
            return {"success": True}
        except Exception as e:
            await self.db.rollback()
            raise HTTPException(500, f"Error al eliminar la lección guardada: {e}")
