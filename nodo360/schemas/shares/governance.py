import uuid
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROPOSAL_STATUSES = (
    "draft",
    "pending_review",
    "active",
    "passed",
    "rejected",
    "implemented",
    "cancelled",
)
VOTE_TYPES = ("for", "against", "abstain")
ADMIN_ACTIONS = ("validate", "reject_validation", "veto", "cancel", "implement")


class CreateProposalSchema(BaseModel):
    title: str = Field(..., min_length=10, max_length=200)
    description: str = Field(..., min_length=50)
    detailed_content: Optional[str] = None
    category_id: uuid.UUID
    proposal_level: Literal[1, 2] = 1
    tags: List[str] = Field(default_factory=list, max_length=10)
    status: Literal["draft", "pending_review"] = "pending_review"

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: List[str]) -> List[str]:
        return [t.strip().lower() for t in v if t and t.strip()]


class VoteSchema(BaseModel):
    vote: str
    comment: Optional[str] = Field(None, max_length=1000)


class AdminActionSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    proposal_id: Optional[uuid.UUID] = Field(None, alias="proposalId")
    action: Optional[str] = None
    reason: Optional[str] = Field(None, max_length=1000)
    is_public: bool = Field(True, alias="isPublic")
