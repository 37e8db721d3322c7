import json
from urllib.parse import quote

from sqlalchemy import func, select

from nodo360.db.models.database import CourseEnrollments, Entitlements
from nodo360.services.shares.referral import COMMISSION_RATE, REF_COOKIE
from nodo360.services.user.enroll import safe_redirect_target


def ref_cookie_header(link_id: str, click_id: str = "click-1") -> dict:
    value = json.dumps({"link_id": link_id, "click_id": click_id, "code": "ABC123", "ts": 1})
    return {"cookie": f"{REF_COOKIE}={quote(value, safe='')}"}


def test_safe_redirect_target_only_accepts_relative_paths():
    assert safe_redirect_target("/dashboard") == "/dashboard"
    assert safe_redirect_target("//evil.com/x") is None
    assert safe_redirect_target("https://evil.com") is None
    assert safe_redirect_target(None) is None


async def test_enroll_is_idempotent(client, db, auth, make_user, make_course):
    auth.user = await make_user()
    course = await make_course()

    first = await client.post("/api/v1/enroll", json={"courseId": str(course.id)})
    assert first.status_code == 201
    assert first.json()["alreadyEnrolled"] is False

    second = await client.post("/api/v1/enroll", json={"courseId": str(course.id)})
    assert second.status_code == 200
    assert second.json()["alreadyEnrolled"] is True
    assert second.json()["data"]["id"] == first.json()["data"]["id"]

    total = await db.scalar(
        select(func.count()).select_from(CourseEnrollments).where(
            CourseEnrollments.user_id == auth.user.id
        )
    )
    assert total == 1


async def test_enroll_unknown_or_unpublished_course(client, auth, make_user, make_course):
    auth.user = await make_user()
    draft = await make_course(status="draft")

    res = await client.post(
        "/api/v1/enroll", json={"courseId": "00000000-0000-0000-0000-000000000000"}
    )
    assert res.status_code == 404
    assert res.json() == {"error": "Curso no encontrado"}

    res = await client.post("/api/v1/enroll", json={"courseId": str(draft.id)})
    assert res.status_code == 403


async def test_enroll_requires_login(client, make_course):
    course = await make_course()
    res = await client.post("/api/v1/enroll", json={"courseId": str(course.id)})
    assert res.status_code == 401


async def test_premium_course_needs_entitlement(client, db, auth, make_user, make_course):
    auth.user = await make_user()
    course = await make_course(is_premium=True, is_free=False)

    res = await client.post("/api/v1/enroll", json={"courseId": str(course.id)})
    assert res.status_code == 403

    db.add(Entitlements(user_id=auth.user.id, type="course_access", target_id=course.id))
    await db.commit()

    res = await client.post("/api/v1/enroll", json={"courseId": str(course.id)})
    assert res.status_code == 201


async def test_full_platform_entitlement_opens_any_premium_course(
    client, db, auth, make_user, make_course
):
    auth.user = await make_user()
    course = await make_course(is_premium=True, is_free=False)
    db.add(Entitlements(user_id=auth.user.id, type="full_platform"))
    await db.commit()

    res = await client.post("/api/v1/enroll", json={"courseId": str(course.id)})
    assert res.status_code == 201


async def test_enroll_with_ref_cookie_tracks_conversion(
    client, rpc, auth, make_user, make_course
):
    auth.user = await make_user()
    course = await make_course()
    rpc.results["track_referral_conversion"] = {"success": True, "commission_cents": 0}

    res = await client.post(
        "/api/v1/enroll",
        json={"courseId": str(course.id)},
        headers=ref_cookie_header("link-1"),
    )
    assert res.status_code == 201

    [params] = rpc.called("track_referral_conversion")
    assert params["p_link_id"] == "link-1"
    assert params["p_click_id"] == "click-1"
    assert params["p_conversion_type"] == "enrollment"
    assert params["p_revenue_cents"] == 0
    assert params["p_commission_rate"] == COMMISSION_RATE


async def test_conversion_failure_does_not_break_enrollment(
    client, rpc, auth, make_user, make_course
):
    auth.user = await make_user()
    course = await make_course()
    rpc.failing.add("track_referral_conversion")

    res = await client.post(
        "/api/v1/enroll",
        json={"courseId": str(course.id)},
        headers=ref_cookie_header("link-1"),
    )
    assert res.status_code == 201


async def test_no_conversion_without_cookie(client, rpc, auth, make_user, make_course):
    auth.user = await make_user()
    course = await make_course()

    await client.post("/api/v1/enroll", json={"courseId": str(course.id)})
    assert rpc.called("track_referral_conversion") == []


async def test_unenroll_when_not_enrolled(client, auth, make_user, make_course):
    auth.user = await make_user()
    course = await make_course()

    res = await client.request("DELETE", "/api/v1/enroll", json={"courseId": str(course.id)})
    assert res.status_code == 400

    await client.post("/api/v1/enroll", json={"courseId": str(course.id)})
    res = await client.request("DELETE", "/api/v1/enroll", json={"courseId": str(course.id)})
    assert res.status_code == 200
    assert res.json()["success"] is True


# ==============================
# 🔁 Inscripción por enlace (GET)
# ==============================


async def test_get_enroll_anonymous_goes_to_login(client, make_course):
    course = await make_course()

    res = await client.get("/api/v1/enroll", params={"courseId": str(course.id)})
    assert res.status_code == 302
    expected = quote(f"/api/v1/enroll?courseId={course.id}", safe="")
    assert res.headers["location"] == f"/login?redirect={expected}"


async def test_get_enroll_json_debug_format(client, make_course):
    course = await make_course()

    res = await client.get(
        "/api/v1/enroll", params={"courseId": str(course.id), "format": "json"}
    )
    assert res.status_code == 200
    assert res.json()["ok"] is False
    assert res.json()["reason"] == "no_auth"


async def test_get_enroll_without_course_id(client, auth, make_user):
    auth.user = await make_user()

    res = await client.get("/api/v1/enroll", params={"format": "json"})
    assert res.status_code == 400
    assert res.json() == {"ok": False, "error": "courseId requerido"}

    res = await client.get("/api/v1/enroll", params={"courseId": "no-es-un-uuid", "format": "json"})
    assert res.status_code == 400

    res = await client.get("/api/v1/enroll")
    assert res.status_code == 302
    assert res.headers["location"] == "/cursos"


async def test_get_enroll_redirects_to_course(client, db, auth, make_user, make_course):
    auth.user = await make_user()
    course = await make_course(slug="lightning-basico")

    res = await client.get("/api/v1/enroll", params={"courseId": str(course.id)})
    assert res.status_code == 302
    assert res.headers["location"] == "/cursos/lightning-basico"

    enrollment = await db.scalar(
        select(CourseEnrollments).where(CourseEnrollments.user_id == auth.user.id)
    )
    assert enrollment is not None


async def test_get_enroll_ignores_external_redirect(client, auth, make_user, make_course):
    auth.user = await make_user()
    course = await make_course(slug="lightning-basico")

    res = await client.get(
        "/api/v1/enroll",
        params={"courseId": str(course.id), "redirect": "//evil.com"},
    )
    assert res.headers["location"] == "/cursos/lightning-basico"

    res = await client.get(
        "/api/v1/enroll",
        params={"courseId": str(course.id), "redirect": "/dashboard", "format": "json"},
    )
    body = res.json()
    assert body["redirect"] == "/dashboard"
    assert body["alreadyEnrolled"] is True
    assert body["enrolled"] is False


async def test_get_enroll_premium_without_access(client, auth, make_user, make_course):
    auth.user = await make_user()
    course = await make_course(slug="premium", is_premium=True, is_free=False)

    res = await client.get(
        "/api/v1/enroll", params={"courseId": str(course.id), "format": "json"}
    )
    assert res.json()["reason"] == "premium_required"
    assert res.json()["redirect"] == "/cursos/premium"
