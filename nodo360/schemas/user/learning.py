import uuid

from pydantic import BaseModel, ConfigDict, Field


class CompleteLessonSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course_id: uuid.UUID = Field(..., alias="courseId")
    lesson_id: uuid.UUID = Field(..., alias="lessonId")


class NextLessonSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course_slug: str = Field(..., alias="courseSlug", min_length=1)
    lesson_slug: str = Field(..., alias="lessonSlug", min_length=1)
