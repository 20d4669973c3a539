"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable. Training submissions are
deliberately loose (`Any`) so that the store's own validation rules,
not FastAPI's, decide how a bad payload is reported.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional, Union

from . import models


class ProjectIn(BaseModel):
    """Payload for creating a project."""
    model_config = ConfigDict(populate_by_name=True)

    type: str
    name: str
    language: str = "en"
    field_definitions: List[Any] = Field(default_factory=list, alias="fields")
    crowd_sourced: bool = Field(default=False, alias="isCrowdSourced")


class ProjectOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    userid: str
    classid: str
    type: str
    name: str
    language: str
    field_definitions: List[Any] = Field(alias="fields")
    isCrowdSourced: bool

    @classmethod
    def from_model(cls, project: models.Project) -> "ProjectOut":
        return cls(
            id=project.id,
            userid=project.user_id,
            classid=project.class_id,
            type=project.type,
            name=project.name,
            language=project.language,
            field_definitions=project.field_definitions or [],
            isCrowdSourced=project.crowd_sourced,
        )


class LabelIn(BaseModel):
    """Request body for registering a label. The store decides what a usable label is."""
    label: Optional[Any] = None


class TrainingIn(BaseModel):
    """Request body for submitting one audio training example."""
    label: Optional[Any] = None
    data: Optional[Any] = None


class TrainingOut(BaseModel):
    id: str
    label: str
    audiodata: List[Union[int, float]]

    @classmethod
    def from_model(cls, example: models.TrainingExample) -> "TrainingOut":
        return cls(id=example.id, label=example.label, audiodata=example.audiodata)
