# nodo360/db/rpc.py
import json
import re
import uuid
from typing import Any

from fastapi import Depends
from loguru import logger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.db.session import get_session

_RPC_NAME = re.compile(r"^[a-z_][a-z0-9_]*$")


class RpcError(Exception):
    """Error al ejecutar un procedimiento almacenado."""

    def __init__(self, name: str, message: str):
        super().__init__(f"{name}: {message}")
        self.name = name
        self.message = message


class RpcClient:
    """
    Invoca procedimientos almacenados (RPC) de la base de datos por nombre.

    Los argumentos se pasan con notación nombrada (`p_user_id => :p_user_id`) y
    el resultado se devuelve como JSON decodificado (`to_jsonb(...)`), de modo
    que booleanos, números, uuid y registros llegan como tipos Python simples.
    """

    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def call(self, name: str, **params: Any) -> Any:
        if not _RPC_NAME.match(name):
            raise ValueError(f"Nombre de RPC no válido: {name!r}")
        bad = [k for k in params if not _RPC_NAME.match(k)]
        if bad:
            raise ValueError(f"Parámetros de RPC no válidos: {bad}")

        bound = {k: self._encode(v) for k, v in params.items()}
        args = ", ".join(f"{k} => :{k}" for k in bound)
        stmt = text(f"SELECT to_jsonb({name}({args})) AS result")

        try:
            raw = (await self.db.execute(stmt, bound)).scalar()
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error("❌ [rpc] {} falló: {}", name, e)
            raise RpcError(name, str(e)) from e

        if isinstance(raw, str):
            return json.loads(raw)
        return raw

    @staticmethod
    def _encode(value: Any) -> Any:
        if isinstance(value, uuid.UUID):
            return str(value)
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return value
