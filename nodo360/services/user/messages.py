# nodo360/services/user/messages.py
import datetime
import uuid

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from nodo360.core.logging import short_id
from nodo360.db.models.database import (
    Conversations,
    MessageFlags,
    MessageReports,
    Messages,
    User,
)
from nodo360.db.session import get_session
from nodo360.libs.formats.datetime import now as get_now
from nodo360.libs.formats.text import truncate
from nodo360.libs.moderation.message_scanner import (
    MessageFlag,
    check_mass_dm,
    check_repeat_message,
    hash_evidence,
    scan_message,
)
from nodo360.schemas.user.messages import REPORT_REASONS, CreateReportSchema, SendMessageSchema

MAX_MESSAGE_LENGTH = 5000
MAX_REPORT_DETAILS = 500


class MessageService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def _get_conversation(self, conversation_id: uuid.UUID, user: User) -> Conversations:
        conversation = await self.db.get(Conversations, conversation_id)
        if not conversation:
            raise HTTPException(404, "Conversación no encontrada")
        if user.id not in (conversation.participant_1, conversation.participant_2):
            raise HTTPException(403, "No tienes acceso a esta conversación")
        return conversation

    @staticmethod
    def _other_participant(conversation: Conversations, user: User) -> uuid.UUID:
        if conversation.participant_1 == user.id:
            return conversation.participant_2
        return conversation.participant_1

    @staticmethod
    def _serialize_message(m: Messages) -> dict:
        return {
            "id": str(m.id),
            "sender_id": str(m.sender_id),
            "content": m.content,
            "read_at": m.read_at,
            "created_at": m.created_at,
        }

    # ==============================
    # 💬 MENSAJES
    # ==============================

    async def get_messages_async(
        self, conversation_id: uuid.UUID, user: User, limit: int, offset: int
    ):
        conversation = await self._get_conversation(conversation_id, user)

        messages = (
            await self.db.scalars(
                select(Messages)
                .where(Messages.conversation_id == conversation_id)
                .order_by(Messages.created_at.asc())
                .offset(offset)
                .limit(limit)
            )
        ).all()

        other_id = self._other_participant(conversation, user)
        other = await self.db.get(User, other_id)

        return {
            "conversation": {
                "id": str(conversation.id),
                "otherUser": {
                    "id": str(other_id),
                    "full_name": other.full_name if other else "Usuario",
                    "avatar_url": other.avatar_url if other else None,
                    "role": other.role if other else "student",
                },
            },
            "messages": [self._serialize_message(m) for m in messages],
            "pagination": {
                "limit": limit,
                "offset": offset,
                "hasMore": len(messages) == limit,
            },
        }

    async def send_message_async(
        self, conversation_id: uuid.UUID, schema: SendMessageSchema, user: User
    ):
        content = (schema.content or "").strip()
        if not content:
            raise HTTPException(400, "El mensaje no puede estar vacío")
        if len(content) > MAX_MESSAGE_LENGTH:
            raise HTTPException(
                400, f"El mensaje no puede exceder {MAX_MESSAGE_LENGTH} caracteres"
            )

        conversation = await self._get_conversation(conversation_id, user)

        try:
            message = Messages(
                conversation_id=conversation_id,
                sender_id=user.id,
                content=content,
            )
            self.db.add(message)
            conversation.last_message_at = get_now()
            await self.db.commit()
            await self.db.refresh(message)
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [messages] Error enviando mensaje: {}", e)
            raise HTTPException(500, "Error al enviar mensaje")

        await self._flag_message(message, user)
        return {"message": self._serialize_message(message)}

    async def _collect_flags(self, message: Messages, user: User) -> list[MessageFlag]:
        flags = list(scan_message(message.content).flags)
        window_start = message.created_at - datetime.timedelta(hours=1)

        # Mensajes recientes del mismo remitente (sin el actual)
        previous = (
            await self.db.execute(
                select(Messages.content, Messages.created_at).where(
                    Messages.sender_id == user.id,
                    Messages.id != message.id,
                    Messages.created_at >= window_start,
                )
            )
        ).all()
        repeat = check_repeat_message(previous, message.content, reference=message.created_at)
        if repeat["is_repeat"]:
            flags.append(
                MessageFlag(
                    "repeat_message",
                    3,
                    hash_evidence(message.content),
                    {"repeat_count": repeat["repeat_count"]},
                )
            )

        # Conversaciones abiertas por el usuario en la última hora
        initiated = (
            await self.db.scalars(
                select(Conversations.created_at).where(
                    Conversations.participant_1 == user.id,
                    Conversations.created_at >= window_start,
                )
            )
        ).all()
        mass_dm = check_mass_dm(initiated, reference=message.created_at)
        if mass_dm["is_mass_dm"]:
            flags.append(
                MessageFlag(
                    "mass_dm",
                    4,
                    hash_evidence(str(user.id)),
                    {"conversation_count": mass_dm["conversation_count"]},
                )
            )
        return flags

    async def _flag_message(self, message: Messages, user: User) -> None:
        """Guarda las señales de moderación. Nunca hace fallar el envío."""
        try:
            flags = await self._collect_flags(message, user)
            if not flags:
                return
            self.db.add_all(
                [
                    MessageFlags(
                        message_id=message.id,
                        user_id=user.id,
                        flag_type=f.type,
                        severity=f.severity,
                        evidence_hash=f.evidence_hash,
                        evidence_meta=f.evidence_meta,
                    )
                    for f in flags
                ]
            )
            await self.db.commit()
            logger.warning(
                "🚩 [moderation] Mensaje {} de {}: {}",
                short_id(message.id),
                short_id(user.id),
                ", ".join(f.type for f in flags),
            )
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [moderation] Error guardando flags: {}", e)

    # ==============================
    # 🚨 REPORTES
    # ==============================

    async def create_report_async(self, schema: CreateReportSchema, user: User):
        if not schema.conversation_id or not schema.reported_user_id or not schema.reason:
            raise HTTPException(
                400, "Faltan campos requeridos: conversationId, reportedUserId, reason"
            )
        if schema.reason not in REPORT_REASONS:
            raise HTTPException(400, "Razón de reporte inválida")
        if schema.reported_user_id == user.id:
            raise HTTPException(400, "No puedes reportarte a ti mismo")

        conversation = await self.db.get(Conversations, schema.conversation_id)
        if not conversation:
            raise HTTPException(404, "Conversación no encontrada")
        if user.id not in (conversation.participant_1, conversation.participant_2):
            raise HTTPException(403, "No eres participante de esta conversación")
        if schema.reported_user_id != self._other_participant(conversation, user):
            raise HTTPException(
                400, "Solo puedes reportar al otro participante de la conversación"
            )

        if schema.message_id:
            message = await self.db.scalar(
                select(Messages).where(
                    Messages.id == schema.message_id,
                    Messages.conversation_id == schema.conversation_id,
                )
            )
            if not message:
                raise HTTPException(404, "Mensaje no encontrado en esta conversación")
            if message.sender_id != schema.reported_user_id:
                raise HTTPException(400, "El mensaje no pertenece al usuario reportado")

        # Un reporte por (reporter, mensaje)
        if schema.message_id:
            duplicate = await self.db.scalar(
                select(MessageReports.id).where(
                    MessageReports.reporter_user_id == user.id,
                    MessageReports.message_id == schema.message_id,
                )
            )
            if duplicate:
                raise HTTPException(409, "Ya has reportado este mensaje anteriormente")

        try:
            report = MessageReports(
                conversation_id=schema.conversation_id,
                message_id=schema.message_id,
                reporter_user_id=user.id,
                reported_user_id=schema.reported_user_id,
                reason=schema.reason,
                details=truncate(schema.details, MAX_REPORT_DETAILS),
            )
            self.db.add(report)
            await self.db.commit()
            await self.db.refresh(report)
        except IntegrityError:
            await self.db.rollback()
            raise HTTPException(409, "Ya has reportado este mensaje anteriormente")
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [moderation] Error creando reporte: {}", e)
            raise HTTPException(500, "Error al crear reporte")

        logger.info(
            "🚨 [moderation] Reporte {} ({}) de {} contra {}",
            short_id(report.id),
            schema.reason,
            short_id(user.id),
            short_id(schema.reported_user_id),
        )
        return {
            "success": True,
            "reportId": str(report.id),
            "message": "Reporte enviado correctamente. Nuestro equipo lo revisará.",
        }

    async def get_my_reports_async(self, user: User, limit: int, offset: int):
        reports = (
            await self.db.scalars(
                select(MessageReports)
                .options(selectinload(MessageReports.reported_user))
                .where(MessageReports.reporter_user_id == user.id)
                .order_by(MessageReports.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
        ).all()
        return {
            "reports": [
                {
                    "id": str(r.id),
                    "reason": r.reason,
                    "details": r.details,
                    "status": r.status,
                    "created_at": r.created_at,
                    "reported_user": {
                        "id": str(r.reported_user.id),
                        "full_name": r.reported_user.full_name,
                        "avatar_url": r.reported_user.avatar_url,
                    }
                    if r.reported_user
                    else None,
                }
                for r in reports
            ],
            "pagination": {"limit": limit, "offset": offset, "hasMore": len(reports) == limit},
        }
