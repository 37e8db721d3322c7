import datetime
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class NotificationCreateSchema(BaseModel):
    """Notificación in-app para un usuario concreto."""

    user_id: uuid.UUID
    type: str = Field("system", description="Tipo de notificación (welcome, system, ...)")
    title: str = Field(..., max_length=200)
    message: Optional[str] = None
    link: Optional[str] = Field(None, description="Ruta del frontend al hacer click")


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    type: str
    title: str
    message: Optional[str] = None
    link: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime.datetime] = None
    created_at: datetime.datetime
