"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (projects,
labels, training examples). Methods that create rows commit and
refresh; the `delete*` helpers only stage their statements so
that the store can commit a whole cascade as one transaction.
"""

from typing import Dict, List, Optional, Sequence
from sqlmodel import Session, select
from sqlalchemy import delete, func, or_
from sqlalchemy.exc import IntegrityError
from . import models


class ProjectRepository:
    """CRUD operations for `Project` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, project: models.Project) -> models.Project:
        """Persist a new project and return the managed instance."""
        self.session.add(project)
        self.session.commit()
        self.session.refresh(project)
        return project

    def get(self, project_id: str) -> Optional[models.Project]:
        """Get a `Project` by primary key, always read from the database."""
        stmt = select(models.Project).where(models.Project.id == project_id)
        return self.session.exec(stmt).first()

    def list_visible_to_user(self, user_id: str, class_id: str) -> List[models.Project]:
        """Projects owned by the user plus crowd-sourced projects in their class."""
        stmt = select(models.Project).where(
            models.Project.class_id == class_id,
            or_(models.Project.user_id == user_id, models.Project.crowd_sourced == True),  # noqa: E712
        ).order_by(models.Project.created_at)
        return self.session.exec(stmt).all()

    def ids_for_user(self, user_id: str, class_id: str) -> List[str]:
        stmt = select(models.Project.id).where(
            models.Project.class_id == class_id,
            models.Project.user_id == user_id,
        )
        return list(self.session.exec(stmt).all())

    def ids_for_class(self, class_id: str) -> List[str]:
        stmt = select(models.Project.id).where(models.Project.class_id == class_id)
        return list(self.session.exec(stmt).all())

    def delete_many(self, project_ids: Sequence[str]) -> None:
        """Stage deletion of the given projects. Caller commits."""
        if project_ids:
            self.session.exec(delete(models.Project).where(models.Project.id.in_(project_ids)))


class LabelRepository:
    """Query helpers for `ProjectLabel` records."""
    def __init__(self, session: Session):
        self.session = session

    def list_for_project(self, project_id: str) -> List[str]:
        """Return the project's labels in the order they were added."""
        stmt = select(models.ProjectLabel.label).where(
            models.ProjectLabel.project_id == project_id
        ).order_by(models.ProjectLabel.seq)
        return list(self.session.exec(stmt).all())

    def add(self, project_id: str, label: str) -> bool:
        """Register `label` on the project. Returns False if it was already there."""
        existing = self.session.exec(
            select(models.ProjectLabel).where(
                models.ProjectLabel.project_id == project_id,
                models.ProjectLabel.label == label,
            )
        ).first()
        if existing:
            return False
        self.session.add(models.ProjectLabel(project_id=project_id, label=label))
        try:
            self.session.commit()
        except IntegrityError:
            # added concurrently by another request
            self.session.rollback()
            return False
        return True

    def delete_label(self, project_id: str, label: str) -> None:
        """Stage removal of a single label. Caller commits."""
        self.session.exec(
            delete(models.ProjectLabel).where(
                models.ProjectLabel.project_id == project_id,
                models.ProjectLabel.label == label,
            )
        )

    def delete_for_projects(self, project_ids: Sequence[str]) -> None:
        """Stage removal of every label of the given projects. Caller commits."""
        if project_ids:
            self.session.exec(delete(models.ProjectLabel).where(models.ProjectLabel.project_id.in_(project_ids)))


class TrainingRepository:
    """Persist and query `TrainingExample` rows."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, example: models.TrainingExample) -> models.TrainingExample:
        """Store a training example and return it with its sequence number."""
        self.session.add(example)
        self.session.commit()
        self.session.refresh(example)
        return example

    def count_for_project(self, project_id: str) -> int:
        stmt = select(func.count(models.TrainingExample.seq)).where(
            models.TrainingExample.project_id == project_id
        )
        return self.session.exec(stmt).one()

    def count_for_class(self, class_id: str, project_type: str) -> int:
        """Count the class's examples stored in projects of `project_type`."""
        stmt = select(func.count(models.TrainingExample.seq)).join(
            models.Project, models.Project.id == models.TrainingExample.project_id
        ).where(
            models.TrainingExample.class_id == class_id,
            models.Project.type == project_type,
        )
        return self.session.exec(stmt).one()

    def counts_by_label(self, project_id: str) -> Dict[str, int]:
        """Return `{label: count}` for every label used by the project's examples."""
        stmt = select(models.TrainingExample.label, func.count(models.TrainingExample.seq)).where(
            models.TrainingExample.project_id == project_id
        ).group_by(models.TrainingExample.label)
        return {label: count for label, count in self.session.exec(stmt).all()}

    def list_for_project(self, project_id: str, offset: int = 0, limit: Optional[int] = None) -> List[models.TrainingExample]:
        """Return examples in creation order, optionally sliced."""
        stmt = select(models.TrainingExample).where(
            models.TrainingExample.project_id == project_id
        ).order_by(models.TrainingExample.seq).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return self.session.exec(stmt).all()

    def get_in_project(self, project_id: str, training_id: str) -> Optional[models.TrainingExample]:
        """Fetch an example by id, only if it belongs to `project_id`."""
        stmt = select(models.TrainingExample).where(
            models.TrainingExample.project_id == project_id,
            models.TrainingExample.id == training_id,
        )
        return self.session.exec(stmt).first()

    def delete(self, example: models.TrainingExample) -> None:
        """Stage removal of one example. Caller commits."""
        self.session.delete(example)

    def delete_with_label(self, project_id: str, label: str) -> None:
        """Stage removal of the project's examples carrying `label`. Caller commits."""
        self.session.exec(
            delete(models.TrainingExample).where(
                models.TrainingExample.project_id == project_id,
                models.TrainingExample.label == label,
            )
        )

    def delete_for_projects(self, project_ids: Sequence[str]) -> None:
        """Stage removal of every example of the given projects. Caller commits."""
        if project_ids:
            self.session.exec(delete(models.TrainingExample).where(models.TrainingExample.project_id.in_(project_ids)))
