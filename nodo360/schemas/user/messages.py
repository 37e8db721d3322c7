import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

REPORT_REASONS = (
    "spam",
    "external_promo",
    "trading_promo",
    "harassment",
    "scam",
    "inappropriate",
    "other",
)


class SendMessageSchema(BaseModel):
    content: str = ""


class CreateReportSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: Optional[uuid.UUID] = Field(None, alias="conversationId")
    message_id: Optional[uuid.UUID] = Field(None, alias="messageId")
    reported_user_id: Optional[uuid.UUID] = Field(None, alias="reportedUserId")
    reason: Optional[str] = None
    details: Optional[str] = None
