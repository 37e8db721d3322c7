import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Direction = Literal["up", "down"]


class ReorderLessonSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lesson_id: uuid.UUID = Field(..., alias="lessonId")
    module_id: uuid.UUID = Field(..., alias="moduleId")
    direction: Direction


class ReorderModuleSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    module_id: uuid.UUID = Field(..., alias="moduleId")
    course_id: uuid.UUID = Field(..., alias="courseId")
    direction: Direction
