# nodo360/services/shares/certificates.py
import secrets
import string
import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.core.logging import short_id
from nodo360.db.models.database import Certificates, Courses, User
from nodo360.db.session import get_session
from nodo360.libs.formats.datetime import now as get_now

_ALPHABET = string.ascii_uppercase + string.digits


def generate_certificate_number(year: Optional[int] = None) -> str:
    """Formato NODO360-YYYY-XXXXXXX."""
    year = year or get_now().year
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(7))
    return f"NODO360-{year}-{suffix}"


class CertificateService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def issue_for_course(self, user_id: uuid.UUID, course_id: uuid.UUID) -> dict:
        """
        Emite el certificado de finalización de un curso.
        Idempotente: si ya existe para (user, course) se devuelve el mismo.
        """
        existing = await self.db.scalar(
            select(Certificates).where(
                Certificates.user_id == user_id, Certificates.course_id == course_id
            )
        )
        if existing:
            return {"certificate": self._serialize(existing), "isNew": False}

        course = await self.db.get(Courses, course_id)
        course_title = course.title if course else "Curso Completado"
        number = generate_certificate_number()

        try:
            certificate = Certificates(
                user_id=user_id,
                course_id=course_id,
                type="course",
                certificate_number=number,
                title=f"Certificado de Finalización: {course_title}",
                description=f"Certificado de finalización del curso {course_title}",
                verification_url=f"/certificados/{number}",
                issued_at=get_now(),
            )
            self.db.add(certificate)
            await self.db.commit()
        except IntegrityError:
            # Emitido en paralelo por otra petición
            await self.db.rollback()
            existing = await self.db.scalar(
                select(Certificates).where(
                    Certificates.user_id == user_id, Certificates.course_id == course_id
                )
            )
            return {"certificate": self._serialize(existing), "isNew": False}

        logger.info("🎓 [certificates] {} emitido para {}", number, short_id(user_id))
        return {"certificate": self._serialize(certificate), "isNew": True}

    async def get_my_certificates_async(self, user: User):
        rows = (
            await self.db.execute(
                select(Certificates, Courses.title, Courses.slug)
                .join(Courses, Courses.id == Certificates.course_id)
                .where(Certificates.user_id == user.id)
                .order_by(Certificates.issued_at.desc())
            )
        ).all()
        return {
            "certificates": [
                {**self._serialize(cert), "course": {"title": title, "slug": slug}}
                for cert, title, slug in rows
            ]
        }

    async def verify_async(self, certificate_number: str):
        """Verificación pública por número de certificado."""
        row = (
            await self.db.execute(
                select(Certificates, Courses.title, Courses.slug, User.full_name)
                .join(Courses, Courses.id == Certificates.course_id)
                .join(User, User.id == Certificates.user_id)
                .where(Certificates.certificate_number == certificate_number)
            )
        ).first()
        if not row:
            raise HTTPException(404, "Certificado no encontrado")

        cert, course_title, course_slug, user_name = row
        return {
            "valid": True,
            "code": cert.certificate_number,
            "issuedAt": cert.issued_at,
            "userName": user_name,
            "courseTitle": course_title,
            "courseSlug": course_slug,
        }

    @staticmethod
    def _serialize(cert: Certificates) -> dict:
        return {
            "id": str(cert.id),
            "course_id": str(cert.course_id),
            "certificate_number": cert.certificate_number,
            "title": cert.title,
            "description": cert.description,
            "verification_url": cert.verification_url,
            "issued_at": cert.issued_at,
        }
