import uuid

from pydantic import BaseModel, ConfigDict, Field


class EnrollSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course_id: uuid.UUID = Field(..., alias="courseId")
