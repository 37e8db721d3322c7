# nodo360/core/deps.py
import uuid
from typing import List, Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.core.context import get_request
from nodo360.core.logging import short_id
from nodo360.core.security import SecurityService
from nodo360.db.models.database import User
from nodo360.db.session import get_session
from nodo360.libs.formats.datetime import now as get_now

ADMIN = "admin"
INSTRUCTOR_ROLES = ["instructor", "mentor", "admin"]


class AuthorizationService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        security: SecurityService = Depends(SecurityService),
    ):
        self.db = db
        self.security = security

    # ==============================
    # 🧩 CORE AUTH CHECKS
    # ==============================

    @staticmethod
    def _extract_token() -> Optional[str]:
        request = get_request()
        token = request.cookies.get("access_token") or request.headers.get(
            "authorization"
        )
        if token and token.lower().startswith("bearer "):
            token = token.split(" ", 1)[1].strip()
        return token or None

    async def _load_user(self, token: str) -> Optional[User]:
        payload = await self.security.decode_access_token(token)
        try:
            user_id = uuid.UUID(str(payload.get("sub")))
        except ValueError:
            return None

        user = await self.db.scalar(select(User).where(User.id == user_id))
        if not user:
            return None

        user.last_seen_at = get_now()
        await self.db.commit()
        return user

    async def get_current_user(self) -> User:
        """Usuario autenticado a partir de la cookie access_token o del header Bearer."""
        token = self._extract_token()
        if not token:
            raise HTTPException(status_code=401, detail="No autenticado")

        try:
            user = await self._load_user(token)
        except ValueError:
            raise HTTPException(status_code=401, detail="Token inválido")

        if not user:
            raise HTTPException(status_code=401, detail="Token inválido")

        if user.is_suspended and user.role != ADMIN:
            logger.info("[auth] Usuario suspendido: {}", short_id(user.id))
            raise HTTPException(status_code=403, detail="Cuenta suspendida")

        return user

    async def get_current_user_if_any(self) -> Optional[User]:
        """Usuario si hay sesión; None si es anónimo o el token no es válido."""
        token = self._extract_token()
        if not token:
            return None
        try:
            return await self._load_user(token)
        except ValueError:
            return None

    # ==============================
    # 🧩 ROLE-BASED ACCESS CONTROL
    # ==============================

    async def require_role(self, required_roles: Optional[List[str]] = None) -> User:
        """Exige que el usuario tenga uno de los roles indicados (p. ej. admin)."""
        current_user = await self.get_current_user()

        if not required_roles:
            return current_user

        if current_user.role not in required_roles:
            raise HTTPException(status_code=403, detail="No tienes permisos")

        return current_user
