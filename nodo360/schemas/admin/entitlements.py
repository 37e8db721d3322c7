import datetime
import uuid
from typing import Optional

from pydantic import BaseModel

ENTITLEMENT_TYPES = ("course_access", "full_platform", "learning_path_access")


class GrantEntitlementSchema(BaseModel):
    user_id: uuid.UUID
    type: str
    target_id: Optional[uuid.UUID] = None
    reason: Optional[str] = None
    expires_at: Optional[datetime.datetime] = None


class RevokeEntitlementSchema(BaseModel):
    entitlement_id: uuid.UUID
