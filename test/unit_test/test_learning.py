import pytest
from sqlalchemy import func, select

from nodo360.db.models.database import (
    Certificates,
    CourseEnrollments,
    Entitlements,
    QuizAttempts,
    UserProgress,
    XpEvents,
)


@pytest.fixture
def enrolled(db, auth, make_user, make_course, make_module_with_lessons):
    """Alumno inscrito en un curso de un módulo; devuelve (course_id, slug, [lesson_ids])."""

    async def _make(lessons: int = 2, **course_kwargs):
        auth.user = await make_user()
        course = await make_course(**course_kwargs)
        _, items = await make_module_with_lessons(course, lessons=lessons)
        db.add(CourseEnrollments(user_id=auth.user.id, course_id=course.id))
        await db.commit()
        return course.id, course.slug, [lesson.id for lesson in items]

    return _make


async def complete(client, course_id, lesson_id):
    return await client.post(
        "/api/v1/lessons/complete",
        json={"courseId": str(course_id), "lessonId": str(lesson_id)},
    )


async def test_complete_lesson_tracks_progress_and_awards_xp_once(client, db, enrolled):
    course_id, _, lessons = await enrolled(lessons=2)

    res = await complete(client, course_id, lessons[0])
    assert res.status_code == 200
    body = res.json()
    assert body["firstCompletion"] is True
    assert (body["completedLessons"], body["totalLessons"], body["percentage"]) == (1, 2, 50)
    assert body["xp"]["xpAwarded"] == 10
    assert body["courseCompletion"] is None

    again = await complete(client, course_id, lessons[0])
    assert again.status_code == 200
    assert again.json()["firstCompletion"] is False
    assert again.json()["xp"] is None

    events = await db.scalar(
        select(func.count()).select_from(XpEvents).where(XpEvents.event_type == "lesson_completed")
    )
    assert events == 1

    enrollment = await db.scalar(
        select(CourseEnrollments).execution_options(populate_existing=True)
    )
    assert enrollment.progress_percentage == 50
    assert enrollment.last_accessed_at is not None


async def test_lessons_must_be_completed_in_order(client, db, enrolled):
    course_id, _, lessons = await enrolled(lessons=2)

    res = await complete(client, course_id, lessons[1])
    assert res.status_code == 403
    assert res.json() == {"error": "Completa la lección anterior primero"}
    assert await db.scalar(select(func.count()).select_from(UserProgress)) == 0


async def test_last_lesson_completes_course_with_certificate(client, db, mailer, enrolled):
    course_id, _, lessons = await enrolled(lessons=2, title="Bitcoin desde cero")

    await complete(client, course_id, lessons[0])
    res = await complete(client, course_id, lessons[1])
    assert res.status_code == 200

    completion = res.json()["courseCompletion"]
    assert completion["status"] == "COURSE_COMPLETED"
    assert completion["certificateCode"].startswith("NODO360-")
    assert completion["redirectTo"] == f"/certificados/{completion['certificateCode']}"
    assert completion["courseXp"]["xpAwarded"] == 100

    cert = await db.scalar(select(Certificates))
    assert cert.title == "Certificado de Finalización: Bitcoin desde cero"
    assert mailer.kinds() == ["send_course_completed_email"]

    enrollment = await db.scalar(
        select(CourseEnrollments).execution_options(populate_existing=True)
    )
    assert enrollment.completed_at is not None
    assert enrollment.progress_percentage == 100


async def test_uncertifiable_course_completes_without_certificate(client, db, enrolled):
    course_id, slug, lessons = await enrolled(lessons=1, is_certifiable=False)

    res = await complete(client, course_id, lessons[0])
    completion = res.json()["courseCompletion"]
    assert completion["status"] == "COURSE_COMPLETED"
    assert completion["certificateCode"] is None
    assert completion["redirectTo"] == f"/cursos/{slug}"
    assert await db.scalar(select(func.count()).select_from(Certificates)) == 0


async def test_final_quiz_blocks_course_completion(
    client, db, auth, make_user, make_course, make_module_with_lessons
):
    auth.user = await make_user()
    course = await make_course()
    module, items = await make_module_with_lessons(course, lessons=1)
    module.requires_quiz = True
    db.add(CourseEnrollments(user_id=auth.user.id, course_id=course.id))
    await db.commit()
    module_id, course_id, slug = module.id, course.id, course.slug

    res = await complete(client, course_id, items[0].id)
    completion = res.json()["courseCompletion"]
    assert completion["status"] == "NEEDS_FINAL_QUIZ"
    assert completion["redirectTo"] == f"/cursos/{slug}/quiz-final"
    assert completion["moduleId"] == str(module_id)

    enrollment = await db.scalar(
        select(CourseEnrollments).execution_options(populate_existing=True)
    )
    assert enrollment.completed_at is None


async def test_complete_lesson_validation(client, enrolled, make_course, make_module_with_lessons):
    course_id, _, lessons = await enrolled(lessons=1)
    other = await make_course()
    _, foreign = await make_module_with_lessons(other, lessons=1)

    res = await complete(client, course_id, foreign[0].id)
    assert res.status_code == 404

    # Inscrito en course_id, no en other
    res = await complete(client, other.id, foreign[0].id)
    assert res.status_code == 400
    assert res.json() == {"error": "No estás inscrito en este curso"}


async def test_premium_modules_need_entitlement(
    client, db, auth, make_user, make_course, make_module_with_lessons
):
    auth.user = await make_user()
    course = await make_course(is_premium=True, is_free=False)
    _, first = await make_module_with_lessons(course, lessons=1, order_index=0)
    _, second = await make_module_with_lessons(course, lessons=1, order_index=1)
    user_id, course_id = auth.user.id, course.id

    res = await client.get(f"/api/v1/lessons/{first[0].id}/access")
    assert res.json() == {"canAccess": True, "reason": "accessible"}

    res = await client.get(f"/api/v1/lessons/{second[0].id}/access")
    body = res.json()
    assert body["canAccess"] is False
    assert body["reason"] == "module_locked"
    assert body["moduleReason"] == "premium_required"

    db.add(Entitlements(user_id=user_id, type="course_access", target_id=course_id))
    await db.commit()

    res = await client.get(f"/api/v1/lessons/{second[0].id}/access")
    assert res.json()["canAccess"] is True


async def test_module_quiz_gates_next_module(
    client, db, auth, make_user, make_course, make_module_with_lessons
):
    auth.user = await make_user()
    course = await make_course()
    first_module, _ = await make_module_with_lessons(course, lessons=1, order_index=0)
    _, second = await make_module_with_lessons(course, lessons=1, order_index=1)
    first_module.requires_quiz = True
    await db.commit()
    user_id, first_module_id, lesson_id = auth.user.id, first_module.id, second[0].id

    res = await client.get(f"/api/v1/lessons/{lesson_id}/access")
    body = res.json()
    assert body["moduleReason"] == "quiz_not_passed"
    assert body["requiredScore"] == 70

    db.add(
        QuizAttempts(
            user_id=user_id,
            module_id=first_module_id,
            score=80,
            total_questions=5,
            correct_answers=4,
            passed=True,
        )
    )
    await db.commit()

    res = await client.get(f"/api/v1/lessons/{lesson_id}/access")
    assert res.json() == {"canAccess": True, "reason": "accessible"}


async def test_lesson_access_unknown_lesson(client, auth, make_user):
    auth.user = await make_user()
    res = await client.get("/api/v1/lessons/00000000-0000-0000-0000-000000000000/access")
    assert res.status_code == 404


async def test_next_lesson_walks_the_course(client, db, enrolled):
    _, slug, _ = await enrolled(lessons=2)

    res = await client.post(
        "/api/v1/learning/next-lesson",
        json={"courseSlug": slug, "lessonSlug": "leccion-0-0"},
    )
    assert res.status_code == 200
    assert res.json()["status"] == "NEXT_LESSON"
    assert res.json()["redirectTo"] == f"/cursos/{slug}/leccion-0-1"

    res = await client.post(
        "/api/v1/learning/next-lesson",
        json={"courseSlug": slug, "lessonSlug": "leccion-0-1"},
    )
    body = res.json()
    assert body["status"] == "COURSE_COMPLETED"
    assert body["redirectTo"] == f"/certificados/{body['certificateCode']}"


async def test_next_lesson_unknown_course_or_lesson(client, enrolled):
    _, slug, _ = await enrolled(lessons=1)

    res = await client.post(
        "/api/v1/learning/next-lesson",
        json={"courseSlug": "no-existe", "lessonSlug": "leccion-0-0"},
    )
    assert res.status_code == 404

    res = await client.post(
        "/api/v1/learning/next-lesson",
        json={"courseSlug": slug, "lessonSlug": "no-existe"},
    )
    assert res.status_code == 400


async def test_continue_goes_to_last_touched_lesson(client, enrolled):
    course_id, slug, lessons = await enrolled(lessons=3)

    res = await client.get("/api/v1/continue", params={"courseSlug": slug, "format": "json"})
    assert res.json() == {
        "ok": True,
        "redirect": f"/cursos/{slug}/leccion-0-0",
        "data": {"courseSlug": slug, "lessonSlug": "leccion-0-0", "hasProgress": False},
    }

    await complete(client, course_id, lessons[0])
    await complete(client, course_id, lessons[1])

    res = await client.get("/api/v1/continue", params={"courseSlug": slug})
    assert res.status_code == 302
    assert res.headers["location"] == f"/cursos/{slug}/leccion-0-1"


async def test_continue_fallbacks(client, auth, make_user, make_course):
    res = await client.get("/api/v1/continue", params={"format": "json"})
    assert res.status_code == 400
    assert res.json() == {"ok": False, "error": "courseSlug requerido"}

    res = await client.get("/api/v1/continue")
    assert res.status_code == 302
    assert res.headers["location"] == "/cursos"

    res = await client.get("/api/v1/continue", params={"courseSlug": "x", "format": "json"})
    assert res.json()["reason"] == "no_auth"
    assert res.json()["redirect"] == "/login?redirect=/cursos/x"

    auth.user = await make_user()
    course = await make_course()
    archived = await make_course(status="archived")

    for slug, reason in [
        ("no-existe", "course_not_found"),
        (archived.slug, "course_archived"),
        (course.slug, "not_enrolled"),
    ]:
        res = await client.get("/api/v1/continue", params={"courseSlug": slug, "format": "json"})
        assert res.json() == {"ok": False, "redirect": f"/cursos/{slug}", "reason": reason}
