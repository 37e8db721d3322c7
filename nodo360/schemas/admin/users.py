import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SetBetaSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[uuid.UUID] = Field(None, alias="userId")
    enabled: bool = True


class SetBetaBulkSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_ids: List[uuid.UUID] = Field(..., alias="userIds")
    enabled: bool = True
