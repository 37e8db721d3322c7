import uuid
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field


class SubmitQuizSchema(BaseModel):
    """Respuestas del alumno: id de pregunta → índice de la opción elegida."""

    model_config = ConfigDict(populate_by_name=True)

    module_id: uuid.UUID = Field(..., alias="moduleId")
    answers: Dict[uuid.UUID, int] = Field(default_factory=dict)
