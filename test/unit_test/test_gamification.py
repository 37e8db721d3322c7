import pytest
from sqlalchemy import select

from nodo360.db.models.database import SystemSettings, UserGamificationStats, XpEvents
from nodo360.schemas.admin.system_settings import DEFAULT_LEVEL_RULES
from nodo360.services.admin.system_settings import SystemSettingsService
from nodo360.services.shares.gamification import (
    GamificationService,
    calculate_level,
    xp_for_level,
)


@pytest.mark.parametrize(
    "total_xp, expected",
    [
        (0, (1, 100)),
        (99, (1, 1)),
        (100, (2, 120)),
        (250, (3, 114)),
        (-40, (1, 100)),
        (10**9, (50, 0)),
    ],
)
def test_calculate_level_default_curve(total_xp, expected):
    assert calculate_level(total_xp, DEFAULT_LEVEL_RULES) == expected


def test_xp_for_level_is_geometric():
    assert xp_for_level(1, DEFAULT_LEVEL_RULES) == 100
    assert xp_for_level(2, DEFAULT_LEVEL_RULES) == 120
    assert xp_for_level(3, DEFAULT_LEVEL_RULES) == 144


def test_bad_rules_fall_back_to_defaults():
    rules = {"xp_base": "abc", "xp_multiplier": float("inf"), "max_level": None}
    assert calculate_level(100, rules) == (2, 120)


def test_single_level_curve_is_always_max():
    assert calculate_level(5000, {"max_level": 1}) == (1, 0)


@pytest.fixture
def gamification(db):
    return GamificationService(db=db, settings_service=SystemSettingsService(db=db))


async def test_award_xp_creates_stats_and_event(gamification, db, make_user):
    user = await make_user()

    result = await gamification.award_xp(user.id, "lesson_completed")
    assert result == {"xpAwarded": 10, "totalXP": 10, "level": 1, "xpToNextLevel": 90}

    result = await gamification.award_xp(user.id, "course_completed")
    assert result["totalXP"] == 110
    assert result["level"] == 2

    stats = await db.get(UserGamificationStats, user.id, populate_existing=True)
    assert stats.total_xp == 110
    assert stats.current_level == 2

    events = (await db.scalars(select(XpEvents).where(XpEvents.user_id == user.id))).all()
    assert sorted(e.event_type for e in events) == ["course_completed", "lesson_completed"]


async def test_award_xp_uses_stored_rules(gamification, db, make_user):
    user = await make_user()
    db.add(SystemSettings(key="xp_rules", value={"lesson_completed": 40}))
    await db.commit()

    result = await gamification.award_xp(user.id, "lesson_completed")
    assert result["xpAwarded"] == 40


async def test_award_xp_rejects_unknown_event(gamification, make_user):
    user = await make_user()
    with pytest.raises(ValueError):
        await gamification.award_xp(user.id, "viendo_videos")


async def test_negative_adjustment_never_goes_below_zero(gamification, db, make_user):
    user = await make_user()
    await gamification.award_xp(user.id, "quiz_passed")

    result = await gamification.award_xp(user.id, "admin_adjustment", amount=-500)
    assert result["totalXP"] == 0
    assert result["level"] == 1

    # Solo XP positiva deja rastro
    events = (await db.scalars(select(XpEvents).where(XpEvents.user_id == user.id))).all()
    assert [e.event_type for e in events] == ["quiz_passed"]


async def test_stats_endpoint_creates_initial_row(client, auth, make_user):
    auth.user = await make_user()

    res = await client.get("/api/v1/gamification/stats")
    assert res.status_code == 200
    body = res.json()
    assert body["stats"]["total_xp"] == 0
    assert body["stats"]["current_level"] == 1
    assert body["stats"]["xp_to_next_level"] == 100
    assert body["badges"] == []


async def test_admin_adjust_endpoint(client, auth, make_user):
    student = await make_user()
    auth.user = await make_user("admin")

    res = await client.post(
        "/api/v1/admin/gamification/adjust",
        json={"userId": str(student.id), "amount": 150, "reason": "Premio del hackathon"},
    )
    assert res.status_code == 200
    assert res.json()["totalXP"] == 150
    assert res.json()["level"] == 2


async def test_admin_adjust_requires_admin(client, auth, make_user):
    student = await make_user()
    auth.user = await make_user("instructor")

    res = await client.post(
        "/api/v1/admin/gamification/adjust",
        json={"userId": str(student.id), "amount": 10},
    )
    assert res.status_code == 403


async def test_admin_adjust_unknown_user(client, auth, make_user):
    auth.user = await make_user("admin")

    res = await client.post(
        "/api/v1/admin/gamification/adjust",
        json={"userId": "00000000-0000-0000-0000-000000000000", "amount": 10},
    )
    assert res.status_code == 404
