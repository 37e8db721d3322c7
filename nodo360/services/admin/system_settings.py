# nodo360/services/admin/system_settings.py
import copy
from typing import Any, Dict

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nodo360.db.models.database import SystemSettings
from nodo360.db.session import get_session
from nodo360.libs.formats.datetime import now as get_now
from nodo360.schemas.admin.system_settings import SETTINGS_SCHEMAS


class SystemSettingsService:
    """Configuración clave → JSON guardada en system_settings."""

    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def get(self, key: str, default: Dict[str, Any]) -> Dict[str, Any]:
        """Valor guardado mezclado sobre los defaults; si falla la lectura, los defaults."""
        merged = copy.deepcopy(default)
        try:
            row = await self.db.scalar(select(SystemSettings).where(SystemSettings.key == key))
        except Exception as e:
            logger.warning("⚠️ [settings] No se pudo leer '{}', usando defaults: {}", key, e)
            return merged

        if row and isinstance(row.value, dict):
            merged.update({k: v for k, v in row.value.items() if v is not None})
        return merged

    async def get_setting_async(self, key: str):
        schema = SETTINGS_SCHEMAS.get(key)
        if not schema:
            raise HTTPException(404, "Configuración no encontrada")
        value = await self.get(key, schema().model_dump())
        return {"key": key, "value": schema(**value).model_dump()}

    async def update_setting_async(self, key: str, body: Dict[str, Any]):
        schema = SETTINGS_SCHEMAS.get(key)
        if not schema:
            raise HTTPException(404, "Configuración no encontrada")

        # Validación con el schema de la clave (400 si no encaja)
        try:
            value = schema(**body).model_dump()
        except ValueError as e:
            raise HTTPException(400, f"Valores inválidos: {e}")

        try:
            row = await self.db.get(SystemSettings, key)
            if row:
                row.value = value
                row.updated_at = get_now()
            else:
                self.db.add(SystemSettings(key=key, value=value))
            await self.db.commit()
            logger.info("⚙️ [settings] '{}' actualizado", key)
            return {"key": key, "value": value}
        except Exception as e:
            await self.db.rollback()
            raise HTTPException(500, f"Error al guardar la configuración: {e}")
