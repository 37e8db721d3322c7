from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FeedbackSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page_url: Optional[str] = Field(None, alias="pageUrl", max_length=2000)
    message: Optional[str] = Field(None, max_length=5000)
