async def test_get_defaults_and_update(client, auth, make_user):
    auth.user = await make_user("admin")

    res = await client.get("/api/v1/admin/settings/level_rules")
    assert res.json() == {
        "key": "level_rules",
        "value": {"xp_base": 100, "xp_multiplier": 1.2, "max_level": 50},
    }

    res = await client.put("/api/v1/admin/settings/xp_rules", json={"lesson_completed": 25})
    assert res.status_code == 200
    assert res.json()["value"]["lesson_completed"] == 25
    assert res.json()["value"]["quiz_passed"] == 20

    res = await client.get("/api/v1/admin/settings/xp_rules")
    assert res.json()["value"]["lesson_completed"] == 25


async def test_invalid_values_and_unknown_keys(client, auth, make_user):
    auth.user = await make_user("admin")

    res = await client.put("/api/v1/admin/settings/level_rules", json={"xp_multiplier": 0.5})
    assert res.status_code == 400

    res = await client.get("/api/v1/admin/settings/colores")
    assert res.status_code == 404


async def test_settings_admin_only(client, auth, make_user):
    auth.user = await make_user("mentor")
    res = await client.get("/api/v1/admin/settings/xp_rules")
    assert res.status_code == 403
