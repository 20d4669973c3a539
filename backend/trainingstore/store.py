"""Training store: the authoritative CRUD surface for projects, labels
and training examples.

`TrainingStore` coordinates the repositories, the payload validation
rules and the limits provider. HTTP controllers stay thin and delegate
every read and write here. Errors are raised from `errors` and never
swallowed; a rejected submission leaves the database untouched.
"""

import json
import logging
from contextlib import ExitStack
from typing import Any, Dict, List, Optional, Sequence

from sqlmodel import Session

from . import errors, models, repositories, validation
from .config import settings
from .limits import LimitsProvider, get_store_limits
from .pagination import Page, RangeRequest
from .utils.project_locks import ProjectLockRegistry

logger = logging.getLogger("trainingstore.store")

# Shared by every store instance in the process so that concurrent
# requests on the same project serialize their count-then-insert.
_project_locks = ProjectLockRegistry()


def _class_lock_key(project: models.Project) -> str:
    return f"class:{project.class_id}:{project.type}"


class TrainingStore:
    """Projects, labels and training examples for one database session."""
    def __init__(self, session: Session, limits_provider: Optional[LimitsProvider] = None):
        self.session = session
        self.limits_provider = limits_provider or get_store_limits
        self.project_repo = repositories.ProjectRepository(session)
        self.label_repo = repositories.LabelRepository(session)
        self.training_repo = repositories.TrainingRepository(session)

    # projects

    def create_project(self, owner_id: str, class_id: str, type: str, name: str,
                       language: str = "en", fields: Optional[Sequence[Any]] = None,
                       crowd_sourced: bool = False) -> models.Project:
        """Create and return a new project with a freshly generated id."""
        if type not in models.PROJECT_TYPES:
            raise errors.InvalidProjectError()
        if not isinstance(name, str) or not name.strip():
            raise errors.InvalidProjectError("Missing project name")
        project = models.Project(
            user_id=owner_id,
            class_id=class_id,
            type=type,
            name=name.strip(),
            language=language or "en",
            field_definitions=list(fields or []),
            crowd_sourced=bool(crowd_sourced),
        )
        return self.project_repo.create(project)

    def get_project(self, project_id: str) -> models.Project:
        project = self.project_repo.get(project_id)
        if project is None:
            raise errors.NotFoundError()
        return project

    def get_projects_for_user(self, owner_id: str, class_id: str) -> List[models.Project]:
        """Return the user's own projects and the class's crowd-sourced ones."""
        return self.project_repo.list_visible_to_user(owner_id, class_id)

    def _get_owned_project(self, owner_id: str, class_id: str, project_id: str) -> models.Project:
        project = self.get_project(project_id)
        if project.user_id != owner_id or project.class_id != class_id:
            raise errors.NotFoundError()
        return project

    # labels

    def get_labels(self, project_id: str) -> List[str]:
        project = self.get_project(project_id)
        return self.label_repo.list_for_project(project.id)

    def add_label(self, owner_id: str, class_id: str, project_id: str, label: str) -> List[str]:
        """Register `label` on an owned project. Adding an existing label is a no-op.

        Returns the project's labels in insertion order.
        """
        if not isinstance(label, str) or not label.strip():
            raise errors.MissingDataError()
        project = self._get_owned_project(owner_id, class_id, project_id)
        self.label_repo.add(project.id, label)
        return self.label_repo.list_for_project(project.id)

    def remove_label(self, owner_id: str, class_id: str, project_id: str, label: str) -> List[str]:
        """Remove a label and every training example that uses it."""
        project = self._get_owned_project(owner_id, class_id, project_id)
        try:
            self.training_repo.delete_with_label(project.id, label)
            self.label_repo.delete_label(project.id, label)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return self.label_repo.list_for_project(project.id)

    def get_label_counts(self, project_id: str) -> Dict[str, int]:
        """Count training examples for each registered label of the project.

        Registered labels without examples report 0. Examples whose label
        text was never registered are not reported.
        """
        project = self.get_project(project_id)
        labels = self.label_repo.list_for_project(project.id)
        if not labels:
            return {}
        counts = self.training_repo.counts_by_label(project.id)
        return {label: counts.get(label, 0) for label in labels}

    # training

    def store_training(self, project_id: str, data: Any, label: Any) -> models.TrainingExample:
        """Validate and persist one training example.

        The payload is checked before the project is looked up. The count
        check and the insert run under the project's lock so two
        concurrent submissions cannot both pass the last free slot.
        Types with a class-wide ceiling also hold the class's lock while
        the class-wide count is taken.
        """
        validation.check_audio_training(data, label)
        project = self.get_project(project_id)
        limits = self.limits_provider()
        class_ceiling = limits.class_ceiling_for(project)
        timeout = settings.STORE_LOCK_TIMEOUT_SECONDS
        try:
            with ExitStack() as stack:
                if class_ceiling is not None:
                    stack.enter_context(_project_locks.hold(_class_lock_key(project), timeout))
                stack.enter_context(_project_locks.hold(project.id, timeout))

                ceiling = limits.ceiling_for(project)
                count = self.training_repo.count_for_project(project.id)
                if count >= ceiling:
                    self._reject(project, "project", count, ceiling)
                if class_ceiling is not None:
                    class_count = self.training_repo.count_for_class(project.class_id, project.type)
                    if class_count >= class_ceiling:
                        self._reject(project, "class", class_count, class_ceiling)

                example = models.TrainingExample(
                    project_id=project.id,
                    class_id=project.class_id,
                    label=label,
                    audiodata=list(data),
                )
                return self.training_repo.create(example)
        except TimeoutError as exc:
            raise errors.StoreTimeoutError() from exc

    def _reject(self, project: models.Project, scope: str, count: int, ceiling: int) -> None:
        logger.info(
            "training_rejected %s",
            json.dumps({"project_id": project.id, "type": project.type, "scope": scope,
                        "count": count, "ceiling": ceiling}),
        )
        raise errors.LimitExceededError()

    def get_training(self, project_id: str, range_request: Optional[RangeRequest] = None) -> Page:
        """List the project's examples in creation order.

        With a `range_request` only that slice is returned, clamped to the
        number of stored examples; the page reports the bounds and total.
        Without one, every example is returned.
        """
        project = self.get_project(project_id)
        if range_request is None:
            items = self.training_repo.list_for_project(project.id)
            return Page(items=list(items), total=len(items))
        total = self.training_repo.count_for_project(project.id)
        items = []
        if range_request.start < total:
            end = min(range_request.end, total - 1)
            items = self.training_repo.list_for_project(
                project.id, offset=range_request.start, limit=end - range_request.start + 1,
            )
        return Page(items=list(items), total=total, start=range_request.start, requested=range_request)

    def get_training_item(self, project_id: str, training_id: str) -> models.TrainingExample:
        project = self.get_project(project_id)
        example = self.training_repo.get_in_project(project.id, training_id)
        if example is None:
            raise errors.NotFoundError()
        return example

    def delete_training(self, project_id: str, training_id: str) -> None:
        """Delete one example. The id must belong to `project_id`."""
        example = self.get_training_item(project_id, training_id)
        try:
            self.training_repo.delete(example)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def count_training(self, type: str, project_id: str) -> int:
        """Number of examples stored for the project, whatever its `type`."""
        return self.training_repo.count_for_project(project_id)

    # cascades

    def _delete_projects(self, project_ids: List[str]) -> None:
        try:
            self.training_repo.delete_for_projects(project_ids)
            self.label_repo.delete_for_projects(project_ids)
            self.project_repo.delete_many(project_ids)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        if project_ids:
            logger.info("projects_deleted %s", json.dumps({"project_ids": project_ids}))

    def delete_project(self, owner_id: str, class_id: str, project: models.Project) -> None:
        """Delete a project with all of its labels and training examples."""
        owned = self._get_owned_project(owner_id, class_id, project.id)
        self._delete_projects([owned.id])

    def delete_all_for_user(self, owner_id: str, class_id: str) -> int:
        """Delete every project the user owns in the class. Returns how many."""
        project_ids = self.project_repo.ids_for_user(owner_id, class_id)
        self._delete_projects(project_ids)
        return len(project_ids)

    def delete_all_for_class(self, class_id: str) -> int:
        """Delete every project in the class. Returns how many."""
        project_ids = self.project_repo.ids_for_class(class_id)
        self._delete_projects(project_ids)
        return len(project_ids)
