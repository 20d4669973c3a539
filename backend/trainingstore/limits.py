"""Resource ceilings for stored training data.

Limits are read from the environment every time `get_store_limits` is
called, so a changed value (or a stub provider injected by a test)
takes effect on the next submission without restarting the process.
"""

import os
from typing import Callable, Optional

from pydantic import BaseModel


class StoreLimits(BaseModel):
    """Maximum number of training examples per resource type and scope."""
    text_training_items_per_project: int
    number_training_items_per_project: int
    number_training_items_per_class_project: int
    image_training_items_per_project: int
    sound_training_items_per_project: int

    def ceiling_for(self, project) -> int:
        """Return the ceiling that applies to `project`.

        Crowd-sourced `numbers` projects are shared by the whole class and
        use the class-wide ceiling.
        """
        if project.type == "numbers":
            if project.crowd_sourced:
                return self.number_training_items_per_class_project
            return self.number_training_items_per_project
        if project.type == "text":
            return self.text_training_items_per_project
        if project.type == "images":
            return self.image_training_items_per_project
        return self.sound_training_items_per_project

    def class_ceiling_for(self, project) -> Optional[int]:
        """Ceiling on all of a class's examples of `project.type`, or None.

        Only `numbers` projects have one; every `numbers` project in the
        class counts towards it.
        """
        if project.type == "numbers":
            return self.number_training_items_per_class_project
        return None


LimitsProvider = Callable[[], StoreLimits]


def _env_int(name: str, default: int) -> int:
    try:
        return max(0, int(os.getenv(name, str(default))))
    except ValueError:
        return default


def get_store_limits() -> StoreLimits:
    """Return the active limits, read freshly from the environment."""
    return StoreLimits(
        text_training_items_per_project=_env_int("LIMIT_TEXT_TRAINING_PER_PROJECT", 500),
        number_training_items_per_project=_env_int("LIMIT_NUMBER_TRAINING_PER_PROJECT", 1000),
        number_training_items_per_class_project=_env_int("LIMIT_NUMBER_TRAINING_PER_CLASS_PROJECT", 3000),
        image_training_items_per_project=_env_int("LIMIT_IMAGE_TRAINING_PER_PROJECT", 100),
        sound_training_items_per_project=_env_int("LIMIT_SOUND_TRAINING_PER_PROJECT", 100),
    )
