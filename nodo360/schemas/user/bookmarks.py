import uuid
from typing import Optional

from pydantic import BaseModel, Field


class CreateBookmarkSchema(BaseModel):
    lesson_id: uuid.UUID
    note: Optional[str] = Field(None, max_length=1000)
