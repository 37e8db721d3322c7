from sqlalchemy import select

from nodo360.db.models.database import BetaFeedback


async def test_feedback_is_stored_and_mailed(client, db, auth, mailer, make_user):
    auth.user = await make_user()

    res = await client.post(
        "/api/v1/feedback",
        json={"pageUrl": "/cursos/bitcoin", "message": "  El vídeo no carga  "},
    )
    assert res.status_code == 200

    feedback = await db.scalar(select(BetaFeedback))
    assert res.json() == {"success": True, "id": str(feedback.id)}
    assert feedback.message == "El vídeo no carga"
    assert feedback.status == "pending"
    assert feedback.user_email == auth.user.email
    assert mailer.kinds() == ["send_feedback_email"]


async def test_feedback_survives_mail_failure(client, auth, mailer, make_user):
    auth.user = await make_user()
    mailer.fail = True

    res = await client.post("/api/v1/feedback", json={"message": "Hola"})
    assert res.status_code == 200


async def test_feedback_requires_message(client, auth, make_user):
    auth.user = await make_user()

    res = await client.post("/api/v1/feedback", json={"message": "   "})
    assert res.status_code == 400
    assert res.json() == {"error": "El mensaje es requerido"}
