import uuid
from typing import Optional

from pydantic import BaseModel, Field


class CreateReferralLinkSchema(BaseModel):
    course_id: Optional[uuid.UUID] = None
    custom_slug: Optional[str] = Field(None, max_length=64)
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
