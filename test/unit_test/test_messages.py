import datetime

import pytest
from sqlalchemy import select

from nodo360.db.models.database import (
    Conversations,
    MessageFlags,
    MessageReports,
    Messages,
)
from nodo360.libs.formats.datetime import now as get_now


@pytest.fixture
async def people(make_user):
    return {
        "ana": await make_user(full_name="Ana"),
        "bruno": await make_user(full_name="Bruno"),
        "carla": await make_user(full_name="Carla"),
    }


@pytest.fixture
async def conversation(db, people):
    conversation = Conversations(
        participant_1=people["ana"].id, participant_2=people["bruno"].id
    )
    db.add(conversation)
    await db.commit()
    return conversation


async def send(client, conversation, content):
    return await client.post(f"/api/v1/messages/{conversation.id}", json={"content": content})


# ==============================
# 💬 Mensajes
# ==============================


async def test_send_and_read_messages(client, db, auth, people, conversation):
    auth.user = people["ana"]

    res = await send(client, conversation, "  Hola Bruno, ¿empezamos el curso?  ")
    assert res.status_code == 200
    assert res.json()["message"]["content"] == "Hola Bruno, ¿empezamos el curso?"

    await db.refresh(conversation)
    assert conversation.last_message_at is not None

    auth.user = people["bruno"]
    res = await client.get(f"/api/v1/messages/{conversation.id}", params={"limit": 1})
    body = res.json()
    assert body["conversation"]["otherUser"]["full_name"] == "Ana"
    assert len(body["messages"]) == 1
    assert body["pagination"]["hasMore"] is True

    # mensaje limpio: sin señales de moderación
    assert (await db.scalars(select(MessageFlags))).all() == []


async def test_message_access_rules(client, auth, people, conversation):
    auth.user = people["carla"]
    res = await client.get(f"/api/v1/messages/{conversation.id}")
    assert res.status_code == 403

    res = await send(client, conversation, "hola")
    assert res.status_code == 403

    res = await client.get("/api/v1/messages/00000000-0000-0000-0000-000000000000")
    assert res.status_code == 404


async def test_message_content_validation(client, auth, people, conversation):
    auth.user = people["ana"]

    res = await send(client, conversation, "   ")
    assert res.status_code == 400

    res = await send(client, conversation, "a" * 5001)
    assert res.status_code == 400


async def test_invite_link_is_flagged(client, db, auth, people, conversation):
    auth.user = people["ana"]

    res = await send(client, conversation, "Únete a mi grupo VIP: https://t.me/senales_gratis")
    assert res.status_code == 200

    flags = (await db.scalars(select(MessageFlags))).all()
    types = {f.flag_type: f for f in flags}
    assert "invite_link" in types
    assert types["invite_link"].severity == 5
    assert types["invite_link"].user_id == people["ana"].id
    assert types["invite_link"].evidence_meta["domains"] == ["t.me"]


async def test_repeated_message_is_flagged(client, db, auth, people, conversation):
    auth.user = people["ana"]
    text = "Mira mi curso de trading gratis esta semana"

    for _ in range(3):
        await send(client, conversation, text)

    repeats = (
        await db.scalars(select(MessageFlags).where(MessageFlags.flag_type == "repeat_message"))
    ).all()
    assert len(repeats) == 1
    assert repeats[0].severity == 3
    assert repeats[0].evidence_meta == {"repeat_count": 2}


async def test_mass_dm_is_flagged(client, db, auth, make_user, people):
    sender = people["ana"]
    recent = get_now() - datetime.timedelta(minutes=5)
    conversations = []
    for _ in range(5):
        other = await make_user()
        conv = Conversations(participant_1=sender.id, participant_2=other.id, created_at=recent)
        db.add(conv)
        conversations.append(conv)
    await db.commit()
    auth.user = sender

    await send(client, conversations[-1], "Hola, ¿qué tal?")

    [flag] = (
        await db.scalars(select(MessageFlags).where(MessageFlags.flag_type == "mass_dm"))
    ).all()
    assert flag.severity == 4
    assert flag.evidence_meta == {"conversation_count": 5}


# ==============================
# 🚨 Reportes
# ==============================


async def test_report_other_participant(client, db, auth, people, conversation):
    message = Messages(
        conversation_id=conversation.id, sender_id=people["bruno"].id, content="compra ya"
    )
    db.add(message)
    await db.commit()
    auth.user = people["ana"]

    payload = {
        "conversationId": str(conversation.id),
        "messageId": str(message.id),
        "reportedUserId": str(people["bruno"].id),
        "reason": "scam",
        "details": "x" * 800,
    }
    res = await client.post("/api/v1/messages/report", json=payload)
    assert res.status_code == 200
    assert res.json()["success"] is True

    report = await db.scalar(select(MessageReports))
    assert report.status == "pending"
    assert len(report.details) == 500

    res = await client.post("/api/v1/messages/report", json=payload)
    assert res.status_code == 409

    res = await client.get("/api/v1/messages/report")
    [mine] = res.json()["reports"]
    assert mine["reason"] == "scam"
    assert mine["reported_user"]["full_name"] == "Bruno"


async def test_report_rules(client, db, auth, people, conversation):
    own = Messages(conversation_id=conversation.id, sender_id=people["ana"].id, content="hola")
    db.add(own)
    await db.commit()
    base = {"conversationId": str(conversation.id), "reason": "spam"}

    auth.user = people["ana"]
    cases = [
        ({"conversationId": str(conversation.id)}, 400),
        ({**base, "reportedUserId": str(people["bruno"].id), "reason": "aburrido"}, 400),
        ({**base, "reportedUserId": str(people["ana"].id)}, 400),
        ({**base, "reportedUserId": str(people["carla"].id)}, 400),
        (
            {**base, "reportedUserId": str(people["bruno"].id), "messageId": str(own.id)},
            400,
        ),
        (
            {
                **base,
                "reportedUserId": str(people["bruno"].id),
                "messageId": "00000000-0000-0000-0000-000000000000",
            },
            404,
        ),
    ]
    for payload, status_code in cases:
        res = await client.post("/api/v1/messages/report", json=payload)
        assert res.status_code == status_code, payload

    auth.user = people["carla"]
    res = await client.post(
        "/api/v1/messages/report",
        json={**base, "reportedUserId": str(people["ana"].id)},
    )
    assert res.status_code == 403
