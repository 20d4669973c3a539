"""SQLModel data models.

This module defines the store's database tables using SQLModel. A
`Project` owns its `ProjectLabel` rows and its `TrainingExample` rows;
training examples reference labels by plain text, not by row id.
"""

import uuid
from typing import Any, List, Optional
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import JSON, Column, SQLModel, Field

# Largest number of audio data points accepted in one training example.
MAX_AUDIO_POINTS = 20000

PROJECT_TYPES = ("sounds", "text", "numbers", "images")


def _new_id() -> str:
    return str(uuid.uuid4())


class Project(SQLModel, table=True):
    """A training project owned by one student within one class.

    Fields:
    - `type`: one of `PROJECT_TYPES`
    - `field_definitions`: ordered field definitions, used by `numbers` projects
    - `crowd_sourced`: shared with every student in the class
    """
    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(index=True)
    class_id: str = Field(index=True)
    type: str
    name: str
    language: str = "en"
    field_definitions: List[Any] = Field(default_factory=list, sa_column=Column(JSON))
    crowd_sourced: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ProjectLabel(SQLModel, table=True):
    """A label registered against a project. `seq` keeps insertion order."""
    __table_args__ = (UniqueConstraint("project_id", "label"),)

    seq: Optional[int] = Field(default=None, primary_key=True)
    project_id: str = Field(foreign_key="project.id", index=True)
    label: str


class TrainingExample(SQLModel, table=True):
    """One labeled numeric sample stored against a project.

    `seq` is assigned by the database on insert and gives listings a
    stable creation order; `id` is the public identifier.
    """
    seq: Optional[int] = Field(default=None, primary_key=True)
    id: str = Field(default_factory=_new_id, index=True, unique=True)
    project_id: str = Field(foreign_key="project.id", index=True)
    class_id: str = Field(index=True)
    label: str = Field(index=True)
    audiodata: List[float] = Field(sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
