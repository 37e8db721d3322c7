import pytest
from fastapi import HTTPException
from sqlalchemy import select

from nodo360.db.models.database import Lessons, Modules
from nodo360.schemas.admin.reorder import ReorderLessonSchema
from nodo360.services.admin.reorder import ReorderService

URL_LESSONS = "/api/v1/admin/lessons/reorder"
URL_MODULES = "/api/v1/admin/modules/reorder"


async def _order(db, module_id):
    rows = (
        await db.execute(
            select(Lessons.id, Lessons.order_index)
            .where(Lessons.module_id == module_id)
            .order_by(Lessons.order_index)
        )
    ).all()
    return [(lid, idx) for lid, idx in rows]


@pytest.fixture
async def setup(auth, make_user, make_course, make_module_with_lessons):
    instructor = await make_user("instructor")
    course = await make_course(instructor)
    module, lessons = await make_module_with_lessons(course, lessons=3)
    auth.user = instructor
    # ids planos: las instancias ORM pueden quedar expiradas tras un rollback
    return instructor, course, module.id, [lesson.id for lesson in lessons]


async def test_move_lesson_down_swaps_with_neighbor(client, db, setup):
    _, _, module_id, lesson_ids = setup
    first, second = lesson_ids[0], lesson_ids[1]

    res = await client.post(
        URL_LESSONS,
        json={"lessonId": str(first), "moduleId": str(module_id), "direction": "down"},
    )

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["newOrderIndex"] == 1
    assert body["swappedWith"] == str(second)

    order = dict(await _order(db, module_id))
    assert order[first] == 1
    assert order[second] == 0


async def test_reorder_preserves_index_multiset(client, db, setup):
    _, _, module_id, lesson_ids = setup
    before = sorted(idx for _, idx in await _order(db, module_id))

    await client.post(
        URL_LESSONS,
        json={"lessonId": str(lesson_ids[2]), "moduleId": str(module_id), "direction": "up"},
    )

    after = sorted(idx for _, idx in await _order(db, module_id))
    assert before == after == [0, 1, 2]


async def test_move_first_lesson_up_is_rejected_without_changes(client, db, setup):
    _, _, module_id, lesson_ids = setup
    before = await _order(db, module_id)

    res = await client.post(
        URL_LESSONS,
        json={"lessonId": str(lesson_ids[0]), "moduleId": str(module_id), "direction": "up"},
    )

    assert res.status_code == 400
    assert "error" in res.json()
    assert await _order(db, module_id) == before


async def test_move_last_lesson_down_is_rejected(client, db, setup):
    _, _, module_id, lesson_ids = setup

    res = await client.post(
        URL_LESSONS,
        json={"lessonId": str(lesson_ids[2]), "moduleId": str(module_id), "direction": "down"},
    )
    assert res.status_code == 400


async def test_failed_neighbor_update_restores_original_order(db, setup, monkeypatch):
    instructor, _, module_id, lesson_ids = setup
    before = await _order(db, module_id)

    service = ReorderService(db=db)
    real_set_order = service._set_order
    calls = []

    async def flaky_set_order(model, item_id, value):
        calls.append((item_id, value))
        if len(calls) == 2:
            raise RuntimeError("conexión perdida")
        await real_set_order(model, item_id, value)

    monkeypatch.setattr(service, "_set_order", flaky_set_order)

    with pytest.raises(HTTPException) as exc:
        await service.reorder_lesson_async(
            ReorderLessonSchema(
                lessonId=lesson_ids[0], moduleId=module_id, direction="down"
            ),
            instructor,
        )

    assert exc.value.status_code == 500
    # paso 1 (centinela), paso 2 (falla) y deshacer paso 1
    assert calls == [(lesson_ids[0], -1), (lesson_ids[1], 0), (lesson_ids[0], 0)]
    assert await _order(db, module_id) == before


async def test_unknown_lesson_returns_404(client, setup):
    _, _, module_id, _ = setup
    res = await client.post(
        URL_LESSONS,
        json={
            "lessonId": "00000000-0000-0000-0000-000000000000",
            "moduleId": str(module_id),
            "direction": "down",
        },
    )
    assert res.status_code == 404


async def test_other_instructor_cannot_reorder(client, auth, make_user, setup):
    _, _, module_id, lesson_ids = setup
    auth.user = await make_user("instructor")

    res = await client.post(
        URL_LESSONS,
        json={"lessonId": str(lesson_ids[0]), "moduleId": str(module_id), "direction": "down"},
    )
    assert res.status_code == 403


async def test_students_cannot_reorder(client, auth, make_user, setup):
    _, _, module_id, lesson_ids = setup
    auth.user = await make_user("student")

    res = await client.post(
        URL_LESSONS,
        json={"lessonId": str(lesson_ids[0]), "moduleId": str(module_id), "direction": "down"},
    )
    assert res.status_code == 403


async def test_move_module_up(client, db, setup, make_module_with_lessons):
    _, course, first_module_id, _ = setup
    second_module, _ = await make_module_with_lessons(course, lessons=1, order_index=1)
    second_module_id = second_module.id

    res = await client.post(
        URL_MODULES,
        json={"moduleId": str(second_module_id), "courseId": str(course.id), "direction": "up"},
    )

    assert res.status_code == 200
    assert res.json()["moduleId"] == str(second_module_id)

    rows = dict(
        (
            await db.execute(
                select(Modules.id, Modules.order_index).where(Modules.course_id == course.id)
            )
        ).all()
    )
    assert rows == {second_module_id: 0, first_module_id: 1}
