from sqlalchemy import select

from nodo360.db.models.database import Notifications, User


async def test_enable_beta_sends_welcome_and_notification(client, db, auth, mailer, make_user):
    auth.user = await make_user("admin")
    student = await make_user(full_name="Ana")

    res = await client.post("/api/v1/admin/users/beta", json={"userId": str(student.id)})
    assert res.status_code == 200
    assert res.json()["emailSent"] is True
    assert mailer.kinds() == ["send_welcome_email"]

    await db.refresh(student)
    assert student.is_beta is True

    [notification] = (
        await db.scalars(select(Notifications).where(Notifications.user_id == student.id))
    ).all()
    assert notification.type == "welcome"
    assert notification.link == "/cursos"


async def test_no_broadcast_when_welcome_email_fails(client, db, auth, mailer, make_user):
    auth.user = await make_user("admin")
    student = await make_user()
    mailer.fail = True

    res = await client.post("/api/v1/admin/users/beta", json={"userId": str(student.id)})
    assert res.status_code == 200
    assert res.json()["emailSent"] is False

    notifications = (await db.scalars(select(Notifications))).all()
    assert notifications == []


async def test_disable_beta_for_admin_is_rejected(client, auth, make_user):
    auth.user = await make_user("admin")
    other_admin = await make_user("admin", is_beta=True)

    res = await client.post(
        "/api/v1/admin/users/beta",
        json={"userId": str(other_admin.id), "enabled": False},
    )
    assert res.status_code == 400


async def test_set_beta_validation(client, auth, make_user):
    auth.user = await make_user("admin")

    res = await client.post("/api/v1/admin/users/beta", json={})
    assert res.status_code == 400

    res = await client.post(
        "/api/v1/admin/users/beta",
        json={"userId": "00000000-0000-0000-0000-000000000000"},
    )
    assert res.status_code == 404


async def test_bulk_update_skips_admins(client, db, auth, make_user):
    auth.user = await make_user("admin")
    students = [await make_user(is_beta=True) for _ in range(2)]
    admin = await make_user("admin", is_beta=True)

    res = await client.patch(
        "/api/v1/admin/users/beta",
        json={"userIds": [str(u.id) for u in [*students, admin]], "enabled": False},
    )
    assert res.status_code == 200
    assert res.json()["count"] == 2

    flags = dict((await db.execute(select(User.id, User.is_beta))).all())
    assert flags[admin.id] is True
    assert all(flags[u.id] is False for u in students)


async def test_beta_stats(client, auth, make_user):
    auth.user = await make_user("admin", is_beta=True)
    await make_user("instructor", is_beta=True)
    await make_user()

    res = await client.get("/api/v1/admin/users/beta")
    assert res.json()["stats"] == {
        "total": 3,
        "withBeta": 2,
        "withoutBeta": 1,
        "admins": 1,
        "instructors": 1,
        "students": 1,
    }


async def test_beta_routes_are_admin_only(client, auth, make_user):
    auth.user = await make_user("instructor")
    res = await client.get("/api/v1/admin/users/beta")
    assert res.status_code == 403


# ==============================
# 📣 Anuncios
# ==============================


async def test_announcement_reaches_beta_users(client, db, auth, make_user):
    auth.user = await make_user("admin", is_beta=True)
    await make_user(is_beta=True)
    await make_user()

    res = await client.post(
        "/api/v1/admin/announcements",
        json={"title": "Mantenimiento", "message": "Esta noche a las 23h", "link": "/estado"},
    )
    assert res.status_code == 200
    # sin webhook configurado Discord no envía
    assert res.json()["channels"] == {"in_app": True, "discord": False}

    notifications = (await db.scalars(select(Notifications))).all()
    assert len(notifications) == 2
    assert {n.type for n in notifications} == {"system"}


async def test_announcement_validation(client, auth, make_user):
    auth.user = await make_user("admin")

    res = await client.post(
        "/api/v1/admin/announcements",
        json={"title": "Hola", "message": "Mundo", "link": "https://evil.com"},
    )
    assert res.status_code == 400

    res = await client.post(
        "/api/v1/admin/announcements",
        json={"title": "Hola", "message": "Mundo", "channels": {"inApp": False, "discord": False}},
    )
    assert res.status_code == 400

    res = await client.post("/api/v1/admin/announcements", json={"title": "  ", "message": "x"})
    assert res.status_code == 400
