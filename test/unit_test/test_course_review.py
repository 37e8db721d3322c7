from sqlalchemy import select

from nodo360.db.models.database import Notifications


async def test_pending_list(client, auth, make_user, make_course):
    instructor = await make_user("instructor", full_name="Iván")
    await make_course(instructor, slug="pendiente", status="pending_review")
    await make_course(instructor, slug="publicado")
    auth.user = await make_user("mentor")

    res = await client.get("/api/v1/admin/courses/pending")
    [course] = res.json()["data"]
    assert course["slug"] == "pendiente"
    assert course["instructor"]["full_name"] == "Iván"


async def test_approve_publishes_and_notifies(client, db, auth, mailer, make_user, make_course):
    instructor = await make_user("instructor")
    course = await make_course(instructor, slug="nuevo", status="pending_review")
    await make_user(is_beta=True)
    auth.user = await make_user("admin")

    res = await client.post(
        f"/api/v1/admin/courses/{course.id}/review", json={"action": "approve"}
    )
    assert res.status_code == 200
    assert res.json()["status"] == "published"

    await db.refresh(course)
    assert course.status == "published"
    assert course.published_at is not None
    assert mailer.kinds() == ["send_course_approved_email"]

    notifications = (await db.scalars(select(Notifications))).all()
    by_type = sorted(n.type for n in notifications)
    # aviso al instructor + anuncio del curso al usuario beta
    assert by_type == ["course_approved", "course_published"]


async def test_request_changes_needs_comment(client, db, auth, mailer, make_user, make_course):
    instructor = await make_user("instructor")
    course = await make_course(instructor, status="pending_review")
    auth.user = await make_user("mentor")

    res = await client.post(
        f"/api/v1/admin/courses/{course.id}/review",
        json={"action": "request_changes", "comment": "corto"},
    )
    assert res.status_code == 400

    res = await client.post(
        f"/api/v1/admin/courses/{course.id}/review",
        json={"action": "request_changes", "comment": "Falta el módulo de ejercicios"},
    )
    assert res.status_code == 200
    await db.refresh(course)
    assert course.status == "draft"
    assert mailer.kinds() == ["send_course_changes_requested_email"]


async def test_review_rejects_wrong_state_and_roles(client, auth, make_user, make_course):
    instructor = await make_user("instructor")
    published = await make_course(instructor)

    auth.user = instructor
    res = await client.post(
        f"/api/v1/admin/courses/{published.id}/review", json={"action": "approve"}
    )
    assert res.status_code == 403

    auth.user = await make_user("admin")
    res = await client.post(
        f"/api/v1/admin/courses/{published.id}/review", json={"action": "approve"}
    )
    assert res.status_code == 400

    res = await client.post(
        "/api/v1/admin/courses/00000000-0000-0000-0000-000000000000/review",
        json={"action": "approve"},
    )
    assert res.status_code == 404

    res = await client.post(
        f"/api/v1/admin/courses/{published.id}/review", json={"action": "publish"}
    )
    assert res.status_code == 400
