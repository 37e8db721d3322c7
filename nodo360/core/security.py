import hashlib
from typing import Any, Dict

import jwt

from nodo360.core.settings import settings


class SecurityService:
    def __init__(self):
        self.secret_key = settings.JWT_SECRET
        self.algorithm = settings.ALGORITHM
        self.audience = settings.JWT_AUDIENCE or None

    # 🔐 JWT del proveedor de autenticación
    async def decode_access_token(self, token: str) -> Dict[str, Any]:
        options = {} if self.audience else {"verify_aud": False}
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                options=options,
            )
        except jwt.ExpiredSignatureError:
            raise ValueError("Token expired")
        except jwt.InvalidTokenError:
            raise ValueError("Invalid token")

    # 🔒 IP anonimizada para tracking
    @staticmethod
    def hash_ip(ip: str | None) -> str | None:
        if not ip:
            return None
        salted = f"{settings.JWT_SECRET}:{ip}".encode("utf-8")
        return hashlib.sha256(salted).hexdigest()[:32]
