from typing import Optional

from pydantic import BaseModel, Field


class MentorApplySchema(BaseModel):
    motivation: str = Field("", max_length=5000)
    experience: Optional[str] = Field(None, max_length=5000)
    availability: Optional[str] = Field(None, max_length=1000)
