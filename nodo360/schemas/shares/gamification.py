import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AdjustXpSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: uuid.UUID = Field(..., alias="userId")
    amount: int = Field(..., ge=-100_000, le=100_000)
    reason: Optional[str] = Field(None, max_length=500)
