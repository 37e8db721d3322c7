import re

from sqlalchemy import func, select

from nodo360.db.models.database import Certificates
from nodo360.services.shares.certificates import CertificateService, generate_certificate_number


def test_certificate_number_format():
    number = generate_certificate_number(2026)
    assert re.fullmatch(r"NODO360-2026-[A-Z0-9]{7}", number)


async def test_issue_is_idempotent(db, make_user, make_course):
    user = await make_user()
    course = await make_course(title="Lightning")
    service = CertificateService(db=db)

    first = await service.issue_for_course(user.id, course.id)
    second = await service.issue_for_course(user.id, course.id)

    assert first["isNew"] is True
    assert second["isNew"] is False
    assert first["certificate"]["certificate_number"] == second["certificate"]["certificate_number"]
    assert first["certificate"]["verification_url"] == (
        f"/certificados/{first['certificate']['certificate_number']}"
    )
    assert await db.scalar(select(func.count()).select_from(Certificates)) == 1


async def test_list_and_public_verification(client, db, auth, make_user, make_course):
    auth.user = await make_user(full_name="Satoshi")
    course = await make_course(title="Bitcoin desde cero")
    issued = await CertificateService(db=db).issue_for_course(auth.user.id, course.id)
    number = issued["certificate"]["certificate_number"]

    res = await client.get("/api/v1/certificates")
    [mine] = res.json()["certificates"]
    assert mine["certificate_number"] == number
    assert mine["course"] == {"title": "Bitcoin desde cero", "slug": course.slug}

    # La verificación es pública
    auth.user = None
    res = await client.get(f"/api/v1/certificates/{number}")
    assert res.status_code == 200
    assert res.json()["userName"] == "Satoshi"
    assert res.json()["courseTitle"] == "Bitcoin desde cero"

    res = await client.get("/api/v1/certificates/NODO360-2026-XXXXXXX")
    assert res.status_code == 404
    assert res.json() == {"error": "Certificado no encontrado"}
