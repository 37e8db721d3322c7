from sqlalchemy import select

from nodo360.db.models.database import CourseEnrollments, Notifications, XpEvents
from nodo360.services.shares.gamification import GamificationService


async def test_complete_course_awards_xp_once(client, db, auth, mailer, make_user, make_course):
    auth.user = await make_user()
    course = await make_course(title="Bitcoin desde cero")
    db.add(CourseEnrollments(user_id=auth.user.id, course_id=course.id))
    await db.commit()

    res = await client.post(f"/api/v1/progress/courses/{course.id}/complete")
    assert res.status_code == 200
    body = res.json()
    assert body["alreadyCompleted"] is False
    assert body["xp"]["xpAwarded"] == 100
    assert body["xp"]["level"] == 2

    res = await client.post(f"/api/v1/progress/courses/{course.id}/complete")
    assert res.json()["alreadyCompleted"] is True
    assert res.json()["xp"] is None

    events = (await db.scalars(select(XpEvents))).all()
    assert [e.event_type for e in events] == ["course_completed"]
    assert mailer.kinds() == ["send_course_completed_email"]

    enrollment = await db.scalar(select(CourseEnrollments))
    assert enrollment.progress_percentage == 100

    [notification] = (await db.scalars(select(Notifications))).all()
    assert notification.type == "course_completed"


async def test_complete_course_requires_enrollment(client, auth, make_user, make_course):
    auth.user = await make_user()
    course = await make_course()

    res = await client.post(f"/api/v1/progress/courses/{course.id}/complete")
    assert res.status_code == 400

    res = await client.post(
        "/api/v1/progress/courses/00000000-0000-0000-0000-000000000000/complete"
    )
    assert res.status_code == 404


async def test_xp_failure_keeps_completion(
    client, db, auth, mailer, make_user, make_course, monkeypatch
):
    auth.user = await make_user()
    course = await make_course(title="Lightning básico")
    db.add(CourseEnrollments(user_id=auth.user.id, course_id=course.id))
    await db.commit()

    async def broken_award_xp(self, *args, **kwargs):
        raise RuntimeError("upsert caído")

    monkeypatch.setattr(GamificationService, "award_xp", broken_award_xp)

    res = await client.post(f"/api/v1/progress/courses/{course.id}/complete")
    assert res.status_code == 200
    assert res.json()["alreadyCompleted"] is False
    assert res.json()["xp"] is None
    assert mailer.kinds() == ["send_course_completed_email"]

    enrollment = await db.scalar(
        select(CourseEnrollments).execution_options(populate_existing=True)
    )
    assert enrollment.completed_at is not None
