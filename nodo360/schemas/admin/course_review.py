from typing import Literal, Optional

from pydantic import BaseModel, Field


class CourseReviewSchema(BaseModel):
    action: Literal["approve", "request_changes"]
    comment: Optional[str] = Field(None, max_length=2000)
