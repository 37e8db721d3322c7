from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AnnouncementChannels(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    in_app: bool = Field(True, alias="inApp")
    discord: bool = True


class AnnouncementSchema(BaseModel):
    title: str = Field(..., max_length=200)
    message: str = Field(..., max_length=2000)
    link: Optional[str] = None
    channels: AnnouncementChannels = Field(default_factory=AnnouncementChannels)

    @field_validator("title", "message")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()
