# nodo360/services/shares/mailer.py
from pathlib import Path
from typing import Optional

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from loguru import logger
from pydantic import SecretStr

from nodo360.core.settings import settings
from nodo360.libs.formats.datetime import format_madrid


class MailerService:
    """Emails transaccionales (bienvenida, revisión de cursos, feedback)."""

    def __init__(self):
        base_dir = Path(__file__).resolve().parent.parent.parent  # -> nodo360/
        template_dir = base_dir / "templates" / "emails"

        self.conf = ConnectionConfig(
            MAIL_USERNAME=settings.MAIL_USERNAME,
            MAIL_PASSWORD=SecretStr(settings.MAIL_PASSWORD),
            MAIL_FROM=settings.MAIL_FROM,
            MAIL_FROM_NAME=settings.MAIL_FROM_NAME,
            MAIL_PORT=settings.MAIL_PORT,
            MAIL_SERVER=settings.MAIL_SERVER,
            MAIL_STARTTLS=settings.MAIL_TLS,
            MAIL_SSL_TLS=settings.MAIL_SSL,
            USE_CREDENTIALS=bool(settings.MAIL_USERNAME),
            VALIDATE_CERTS=True,
            SUPPRESS_SEND=int(settings.MAIL_SUPPRESS_SEND),
            TEMPLATE_FOLDER=template_dir,
        )
        self.fastmail = FastMail(self.conf)

    async def _send(
        self,
        subject: str,
        recipients: list[str],
        template_name: str,
        context: dict,
        reply_to: Optional[list[str]] = None,
    ) -> dict:
        """Nunca lanza: devuelve {success, error}."""
        message = MessageSchema(
            subject=subject,
            recipients=recipients,
            template_body={"site_url": settings.SITE_URL, **context},
            subtype=MessageType.html,
            reply_to=reply_to or [],
        )
        try:
            await self.fastmail.send_message(message, template_name=template_name)
        except Exception as e:
            logger.error("❌ [mail] Error enviando '{}' a {}: {}", subject, recipients, e)
            return {"success": False, "error": str(e)}

        logger.info("📧 [mail] '{}' enviado a {}", subject, ", ".join(recipients))
        return {"success": True, "error": None}

    async def send_welcome_email(self, to: str, user_name: Optional[str]):
        return await self._send(
            "🎉 ¡Bienvenido a Nodo360!",
            [to],
            "welcome.html",
            {"user_name": user_name or "estudiante"},
        )

    async def send_course_approved_email(
        self, to: str, instructor_name: Optional[str], course_name: str, course_slug: str
    ):
        return await self._send(
            f'🎉 ¡Tu curso "{course_name}" ha sido aprobado!',
            [to],
            "course_approved.html",
            {
                "instructor_name": instructor_name or "Instructor",
                "course_name": course_name,
                "course_url": f"{settings.SITE_URL}/cursos/{course_slug}",
            },
        )

    async def send_course_changes_requested_email(
        self, to: str, instructor_name: Optional[str], course_name: str, feedback: str
    ):
        return await self._send(
            f'📝 Tu curso "{course_name}" necesita algunos cambios',
            [to],
            "course_changes_requested.html",
            {
                "instructor_name": instructor_name or "Instructor",
                "course_name": course_name,
                "feedback": feedback,
                "dashboard_url": f"{settings.SITE_URL}/dashboard/instructor/cursos",
            },
        )

    async def send_course_completed_email(
        self,
        to: str,
        user_name: Optional[str],
        course_name: str,
        certificate_url: Optional[str] = None,
    ):
        return await self._send(
            f'🎓 ¡Felicidades! Completaste "{course_name}"',
            [to],
            "course_completed.html",
            {
                "user_name": user_name or "estudiante",
                "course_name": course_name,
                "certificate_url": certificate_url,
            },
        )

    async def send_feedback_email(
        self, user_email: str, page_url: Optional[str], message: str, feedback_id: str
    ):
        return await self._send(
            "🔔 Nuevo Feedback - Nodo360",
            [settings.FEEDBACK_INBOX],
            "feedback.html",
            {
                "user_email": user_email,
                "page_url": page_url,
                "message": message,
                "feedback_id": feedback_id,
                "sent_at": format_madrid(),
            },
            reply_to=[user_email],
        )


# ✅ Dependency Injection para los routers
def get_mailer_service() -> MailerService:
    return MailerService()
