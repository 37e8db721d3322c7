# nodo360/services/shares/referral.py
import json
import re
import time
import uuid
from typing import Any, Dict, Optional
from urllib.parse import quote, unquote, urlencode

from fastapi import Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from loguru import logger
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.core.deps import ADMIN
from nodo360.core.logging import short_id
from nodo360.core.ratelimit import get_client_ip
from nodo360.core.security import SecurityService
from nodo360.core.settings import settings
from nodo360.db.models.database import Courses, ReferralLinks, User
from nodo360.db.rpc import RpcClient, RpcError
from nodo360.db.session import get_session
from nodo360.libs.formats.text import is_valid_slug
from nodo360.schemas.shares.referral import CreateReferralLinkSchema

REF_COOKIE = "nodo360_ref"
REF_COOKIE_MAX_AGE = 7 * 24 * 60 * 60
COMMISSION_RATE = 0.30

_TABLET_UA = re.compile(r"tablet|ipad|playbook|silk|android(?!.*mobile)", re.I)
_MOBILE_UA = re.compile(
    r"mobile|iphone|ipod|android|blackberry|opera mini|iemobile|wpdesktop", re.I
)

UTM_FIELDS = ("utm_source", "utm_medium", "utm_campaign")


def classify_device(user_agent: Optional[str]) -> str:
    """mobile | tablet | desktop a partir del User-Agent."""
    if not user_agent:
        return "desktop"
    if _TABLET_UA.search(user_agent):
        return "tablet"
    if _MOBILE_UA.search(user_agent):
        return "mobile"
    return "desktop"


def parse_ref_cookie(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    try:
        data = json.loads(unquote(raw))
    except (TypeError, ValueError):
        logger.warning("⚠️ [referral] Cookie de atribución ilegible")
        return None
    if not isinstance(data, dict) or not data.get("link_id"):
        return None
    return data


class ReferralService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        rpc: RpcClient = Depends(RpcClient),
    ):
        self.db = db
        self.rpc = rpc

    # ==============================
    # 🔗 ENLACES DEL INSTRUCTOR
    # ==============================

    async def list_links_async(self, user: User):
        try:
            rows = (
                await self.db.execute(
                    select(ReferralLinks, Courses.title, Courses.slug)
                    .outerjoin(Courses, Courses.id == ReferralLinks.course_id)
                    .where(ReferralLinks.instructor_id == user.id)
                    .order_by(ReferralLinks.created_at.desc())
                )
            ).all()

            links = []
            for link, course_title, course_slug in rows:
                clicks = link.total_clicks or 0
                conversions = link.total_conversions or 0
                links.append(
                    {
                        "id": str(link.id),
                        "code": link.code,
                        "custom_slug": link.custom_slug,
                        "course_id": str(link.course_id) if link.course_id else None,
                        "course_title": course_title,
                        "course_slug": course_slug,
                        "utm_source": link.utm_source,
                        "utm_medium": link.utm_medium,
                        "utm_campaign": link.utm_campaign,
                        "is_active": link.is_active,
                        "total_clicks": clicks,
                        "total_conversions": conversions,
                        "conversion_rate": round(conversions * 100 / clicks, 2) if clicks else 0,
                        "url": f"{settings.SITE_URL}/r/{link.custom_slug or link.code}",
                        "created_at": link.created_at,
                    }
                )

            logger.info(
                "🔍 [referral] {} enlaces listados para {}", len(links), short_id(user.id)
            )
            return {"success": True, "links": links}

        except Exception as e:
            logger.error("❌ [referral] Error obteniendo enlaces: {}", e)
            raise HTTPException(500, "Error al obtener enlaces")

    async def create_link_async(self, schema: CreateReferralLinkSchema, user: User):
        try:
            # 1️⃣ Si hay curso, debe pertenecer al instructor (salvo admin)
            if schema.course_id:
                course = await self.db.get(Courses, schema.course_id)
                if not course:
                    raise HTTPException(404, "Curso no encontrado")
                if user.role != ADMIN and course.instructor_id != user.id:
                    raise HTTPException(403, "No eres el instructor de este curso")

            # 2️⃣ Slug personalizado: formato + único por instructor
            if schema.custom_slug:
                if not is_valid_slug(schema.custom_slug):
                    raise HTTPException(
                        400,
                        "El slug solo puede contener letras, números, guiones y guiones bajos",
                    )
                existing = await self.db.scalar(
                    select(ReferralLinks.id).where(
                        ReferralLinks.instructor_id == user.id,
                        ReferralLinks.custom_slug == schema.custom_slug,
                    )
                )
                if existing:
                    raise HTTPException(409, "Ya tienes un enlace con este slug")

            # 3️⃣ Código único generado en base de datos
            try:
                code = await self.rpc.call("generate_referral_code")
            except RpcError:
                code = None
            if not code:
                raise HTTPException(500, "Error al generar código")

            link = ReferralLinks(
                instructor_id=user.id,
                course_id=schema.course_id,
                code=str(code),
                custom_slug=schema.custom_slug or None,
                utm_source=schema.utm_source or "referral",
                utm_medium=schema.utm_medium or None,
                utm_campaign=schema.utm_campaign or None,
            )
            self.db.add(link)
            await self.db.commit()
            await self.db.refresh(link)

            logger.info("✅ [referral] Enlace creado: {} por {}", link.code, short_id(user.id))
            return {
                "success": True,
                "link": {
                    "id": str(link.id),
                    "code": link.code,
                    "custom_slug": link.custom_slug,
                    "course_id": str(link.course_id) if link.course_id else None,
                    "utm_source": link.utm_source,
                    "utm_medium": link.utm_medium,
                    "utm_campaign": link.utm_campaign,
                    "is_active": link.is_active,
                    "created_at": link.created_at,
                },
            }

        except HTTPException:
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [referral] Error creando enlace: {}", e)
            raise HTTPException(500, "Error al crear enlace")

    # ==============================
    # 👣 CLICK + REDIRECCIÓN PÚBLICA
    # ==============================

    async def track_click_and_redirect(self, code: str, request: Request) -> RedirectResponse:
        link_row = (
            await self.db.execute(
                select(ReferralLinks, Courses.slug)
                .outerjoin(Courses, Courses.id == ReferralLinks.course_id)
                .where(
                    or_(ReferralLinks.code == code, ReferralLinks.custom_slug == code),
                    ReferralLinks.is_active.is_(True),
                )
                .limit(1)
            )
        ).first()

        if not link_row:
            logger.info("ℹ️ [referral] Código desconocido o inactivo: {}", code)
            return RedirectResponse("/", status_code=302)

        link, course_slug = link_row
        user_agent = request.headers.get("user-agent")
        utm = {
            field: request.query_params.get(field) or getattr(link, field)
            for field in UTM_FIELDS
        }

        # 1️⃣ Registrar el click (si falla, se redirige igual)
        click_id = None
        try:
            result = await self.rpc.call(
                "track_referral_click",
                p_link_id=link.id,
                p_ip_hash=SecurityService.hash_ip(get_client_ip(request)),
                p_user_agent=user_agent,
                p_referer=request.headers.get("referer"),
                p_device_type=classify_device(user_agent),
                p_utm_source=utm["utm_source"],
                p_utm_medium=utm["utm_medium"],
                p_utm_campaign=utm["utm_campaign"],
            )
            click_id = result.get("click_id") if isinstance(result, dict) else result
        except RpcError as e:
            logger.error("❌ [referral] Error registrando click de {}: {}", code, e.message)

        # 2️⃣ Destino con UTM
        destination = f"/cursos/{course_slug}" if course_slug else "/cursos"
        query = urlencode({k: v for k, v in utm.items() if v})
        if query:
            destination = f"{destination}?{query}"

        # 3️⃣ Cookie de atribución (7 días)
        # JSON url-encoded: el valor de la cookie no admite comillas ni comas
        attribution = json.dumps(
            {
                "link_id": str(link.id),
                "click_id": str(click_id) if click_id else None,
                "code": link.code,
                "ts": int(time.time() * 1000),
            },
            separators=(",", ":"),
        )
        response = RedirectResponse(destination, status_code=302)
        response.set_cookie(
            REF_COOKIE,
            quote(attribution, safe=""),
            max_age=REF_COOKIE_MAX_AGE,
            httponly=True,
            samesite="lax",
            secure=settings.is_production,
            path="/",
        )
        logger.info("👣 [referral] Click en {} → {}", link.code, destination)
        return response

    # ==============================
    # 💰 CONVERSIÓN
    # ==============================

    async def track_conversion(
        self,
        request: Request,
        user_id: uuid.UUID,
        course: Courses,
    ) -> None:
        """Atribuye la inscripción al enlace de la cookie. Nunca lanza."""
        attribution = parse_ref_cookie(request.cookies.get(REF_COOKIE))
        if not attribution:
            return

        price_cents = int(round(float(course.price or 0) * 100))
        try:
            result = await self.rpc.call(
                "track_referral_conversion",
                p_link_id=attribution["link_id"],
                p_user_id=user_id,
                p_course_id=course.id,
                p_conversion_type="enrollment" if course.is_free else "purchase",
                p_revenue_cents=0 if course.is_free else price_cents,
                p_click_id=attribution.get("click_id"),
                p_commission_rate=COMMISSION_RATE,
            )
        except RpcError as e:
            logger.error("❌ [enroll] Error registrando conversión de referido: {}", e.message)
            return

        if isinstance(result, dict) and result.get("success"):
            logger.info(
                "✅ [enroll] Conversión registrada: link={}, comisión={}c",
                attribution["link_id"],
                result.get("commission_cents"),
            )
        else:
            error = result.get("error") if isinstance(result, dict) else result
            logger.info("ℹ️ [enroll] Conversión no registrada: {}", error)
